"""Models for meal analysis results."""

from pydantic import BaseModel


class AnalysisItem(BaseModel):
    """Single food item estimated by the model."""

    name: str
    grams: int
    calories: int
    protein: int
    carbs: int
    fats: int


class MealAnalysis(BaseModel):
    """Structured meal estimate returned by the model."""

    title: str
    calories: int
    protein: int
    carbs: int
    fats: int
    items: list[AnalysisItem]
