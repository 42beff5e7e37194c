"""Domain models for meals logged today."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class MacroTotals(BaseModel):
    """Calories and macro grams, summed element-wise."""

    model_config = ConfigDict(frozen=True)

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fats: int = 0

    def plus(self, other: "MacroTotals") -> "MacroTotals":
        """Return the element-wise sum with another total."""
        return MacroTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fats=self.fats + other.fats,
        )

    def as_list(self) -> list[int]:
        return [self.calories, self.protein, self.carbs, self.fats]


class DetectedItem(BaseModel):
    """Single food item in an analyzed meal."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    grams: int = Field(ge=0)
    calories: int = Field(ge=0)
    protein: int = Field(ge=0)
    carbs: int = Field(ge=0)
    fats: int = Field(ge=0)


class MealRecord(BaseModel):
    """A meal committed to today's ledger.

    Macro values may have been edited by the user and are stored as given.
    The image bytes are kept only while the meal belongs to today.
    """

    model_config = ConfigDict(
        frozen=True, ser_json_bytes="base64", val_json_bytes="base64"
    )

    id: UUID = Field(default_factory=uuid4)
    title: str
    calories: int
    protein: int
    carbs: int
    fats: int
    items: list[DetectedItem] = Field(default_factory=list)
    image_bytes: bytes | None = None
    timestamp: datetime

    @property
    def macros(self) -> MacroTotals:
        return MacroTotals(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fats=self.fats,
        )

    def with_macros(self, macros: MacroTotals) -> "MealRecord":
        """Return a copy with totals replaced; items are left untouched."""
        return self.model_copy(
            update={
                "calories": macros.calories,
                "protein": macros.protein,
                "carbs": macros.carbs,
                "fats": macros.fats,
            }
        )


def sum_macros(meals: list[MealRecord]) -> MacroTotals:
    total = MacroTotals()
    for meal in meals:
        total = total.plus(meal.macros)
    return total
