"""Domain models for archived days."""

from datetime import date
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from macro_ledger.domain.meals import MacroTotals


class DailySummary(BaseModel):
    """Numeric-only totals for a closed calendar day."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    calories: int
    protein: int
    carbs: int
    fats: int

    @classmethod
    def from_totals(cls, day: date, totals: MacroTotals) -> "DailySummary":
        return cls(
            date=day,
            calories=totals.calories,
            protein=totals.protein,
            carbs=totals.carbs,
            fats=totals.fats,
        )
