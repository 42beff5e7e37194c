"""Domain models for daily macro goals."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class MacroGoals(BaseModel):
    """User-set daily targets."""

    model_config = ConfigDict(frozen=True)

    calories: int = Field(default=2000, ge=0)
    protein: int = Field(default=150, ge=0)
    carbs: int = Field(default=200, ge=0)
    fats: int = Field(default=70, ge=0)


DEFAULT_GOALS = MacroGoals()


@dataclass(frozen=True)
class MacroProgress:
    """Fraction of each goal consumed, clamped to [0, 1]."""

    calories: float
    protein: float
    carbs: float
    fats: float
