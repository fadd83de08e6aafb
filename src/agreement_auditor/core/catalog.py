# core/catalog.py
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from agreement_auditor.config import settings
from agreement_auditor.core.errors import AgreementNotFound, ConfigurationError
from agreement_auditor.core.schema import Agreement

logger = logging.getLogger(__name__)


class AgreementCatalog:
    """Read-only lookup of purchase agreements."""

    def __init__(self, agreements: Optional[Iterable[Agreement]] = None, path: Optional[Path] = None):
        if agreements is not None:
            self.agreements: Dict[str, Agreement] = {a.id: a for a in agreements}
        else:
            self.agreements = self._load(path or settings.agreements_path)

    def _load(self, path: Path) -> Dict[str, Agreement]:
        """Loads the agreement list from disk."""
        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Agreement catalog not found at %s, starting empty", path)
            return {}
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Agreement catalog {path} is not valid JSON: {e}") from e

        agreements = {}
        for record in records:
            agreement = Agreement.model_validate(record)
            agreements[agreement.id] = agreement
        logger.info("Loaded %d agreements from %s", len(agreements), path)
        return agreements

    def get(self, agreement_id: str) -> Agreement:
        try:
            return self.agreements[agreement_id]
        except KeyError:
            raise AgreementNotFound(agreement_id) from None

    def list(self, status: Optional[str] = None, search: Optional[str] = None) -> List[Agreement]:
        """Filters by status ('all' or None for every status) and a case-insensitive search on id, vendor and item."""
        results = list(self.agreements.values())
        if status and status != "all":
            results = [a for a in results if a.status == status]
        if search:
            needle = search.lower()
            results = [
                a for a in results
                if needle in a.id.lower() or needle in a.vendor.lower() or needle in a.item_name.lower()
            ]
        return results

    def active(self) -> List[Agreement]:
        return self.list(status="active")

    def summary(self) -> Dict[str, float]:
        agreements = list(self.agreements.values())
        return {
            "total": len(agreements),
            "active": sum(1 for a in agreements if a.status == "active"),
            "pending": sum(1 for a in agreements if a.status.startswith("pending")),
            "expired": sum(1 for a in agreements if a.status == "expired"),
            "total_value": sum(a.total_value for a in agreements),
        }
