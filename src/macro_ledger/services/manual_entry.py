"""Manual meal entry without photo analysis."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from macro_ledger.domain.meals import MealRecord
from macro_ledger.services.ledger import LedgerStore
from macro_ledger.services.rollover import local_now

DEFAULT_TITLE = "Meal"


@dataclass
class ManualEntryService:
    """Adds user-typed meals straight to the ledger; never charged to quota."""

    ledger: LedgerStore
    clock: Callable[[], datetime] = local_now

    def add(  # noqa: PLR0913
        self,
        title: str | None = None,
        calories: str | int | None = None,
        protein: str | int | None = None,
        carbs: str | int | None = None,
        fats: str | int | None = None,
    ) -> MealRecord:
        """Build a record from form values and commit it."""
        record = MealRecord(
            title=(title or "").strip() or DEFAULT_TITLE,
            calories=parse_macro_field(calories),
            protein=parse_macro_field(protein),
            carbs=parse_macro_field(carbs),
            fats=parse_macro_field(fats),
            items=[],
            image_bytes=None,
            timestamp=self.clock(),
        )
        self.ledger.add(record)
        return record


def parse_macro_field(value: str | int | None) -> int:
    """Parse a whole-number form field; blank or unparseable becomes 0."""
    if isinstance(value, int):
        return value
    if value is None:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0
