"""Domain model for the ledger snapshot."""

from dataclasses import dataclass
from datetime import date

from macro_ledger.domain.meals import MacroTotals, MealRecord


@dataclass(frozen=True)
class LedgerState:
    """Read-only view of today's meals, totals and usage."""

    today_meals: tuple[MealRecord, ...]
    totals: MacroTotals
    ai_usage_count: int
    last_rollover_day: date
