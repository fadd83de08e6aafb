# core/categories.py
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from agreement_auditor.config import settings

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Electronics",
    "Office Supplies",
    "Services",
    "Raw Materials",
    "Travel",
    "Meals & Entertainment",
    "Software Subscription",
    "Marketing",
]


class CategoryRegistry:
    def __init__(self, names: Optional[Iterable[str]] = None, path: Optional[Path] = None):
        if names is None:
            names = self._load(path or settings.categories_path)
        self.names: List[str] = list(names)

    def _load(self, path: Path) -> List[str]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Category file not found at %s, using defaults", path)
            return list(DEFAULT_CATEGORIES)

    def match(self, raw: Optional[str]) -> Optional[str]:
        """Maps a free-text category onto its canonical spelling, or None."""
        if not raw:
            return None
        needle = raw.strip().lower()
        return next((name for name in self.names if name.lower() == needle), None)

    def add(self, name: str) -> bool:
        name = name.strip()
        if not name or self.match(name):
            return False
        self.names.append(name)
        return True

    def __iter__(self):
        return iter(self.names)

    def __len__(self):
        return len(self.names)
