# core/limits.py
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from agreement_auditor.config import settings

logger = logging.getLogger(__name__)


class DailyLimitManager:
    """
    Per-category daily spending limits and what has been spent today.
    An invoice that pushes a category over its limit is escalated to the CFO.
    """

    def __init__(
        self,
        limits: Optional[Dict[str, float]] = None,
        spent_today: Optional[Dict[str, float]] = None,
        path: Optional[Path] = None,
    ):
        self.path = path or settings.daily_limits_path
        if limits is None:
            data = self._load()
            limits = data.get("limits", {})
            spent_today = data.get("spent_today", {}) if spent_today is None else spent_today
        self.limits: Dict[str, float] = dict(limits)
        self.spent: Dict[str, float] = dict(spent_today or {})

    def _load(self) -> Dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            logger.info("Loaded %d category limits from %s", len(data.get("limits", {})), self.path)
            return data
        except FileNotFoundError:
            logger.warning("Daily limit file not found at %s, no limits enforced", self.path)
            return {}

    def limit_for(self, category: str) -> Optional[float]:
        return self.limits.get(category)

    def spent_today(self, category: str) -> float:
        return self.spent.get(category, 0.0)

    def set_limit(self, category: str, amount: float):
        if amount < 0:
            raise ValueError(f"Daily limit for '{category}' cannot be negative")
        old = self.limits.get(category)
        self.limits[category] = amount
        logger.info("Daily limit for %s changed: %s -> %s", category, old, amount)

    def record_spend(self, category: str, amount: float):
        self.spent[category] = self.spent_today(category) + amount
        logger.debug("Spend today for %s is now %.0f", category, self.spent[category])

    def reset_day(self):
        self.spent.clear()

    def total_daily_budget(self) -> float:
        return sum(self.limits.values())

    def save(self):
        """Persists limits and today's spend back to disk."""
        payload = {"limits": self.limits, "spent_today": self.spent}
        self.path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
