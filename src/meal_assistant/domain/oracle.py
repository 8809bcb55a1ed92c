"""Structured records returned by single-shot model calls."""

from typing import Literal

from pydantic import BaseModel, Field


class FoodItem(BaseModel):
    """Food with macros as produced by the model."""

    name: str = Field(min_length=1)
    quantity: str
    calories: float = Field(ge=0.0)
    protein_g: float = Field(ge=0.0)
    carbs_g: float = Field(ge=0.0)
    fat_g: float = Field(ge=0.0)
    fiber_g: float = Field(default=0.0, ge=0.0)


class MacroTotals(BaseModel):
    """Totals as reported by the model."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float = 0.0


class MealReplacement(BaseModel):
    """Complete replacement for an existing meal."""

    meal_type: Literal["breakfast", "lunch", "dinner", "snack"]
    foods: list[FoodItem]
    totals: MacroTotals
    notes: str | None = None
    logged_at: str | None = None
    changes_summary: str


class MealIdentification(BaseModel):
    """Which candidate meal the user is talking about."""

    target_id: str = Field(min_length=1)
    confidence: Literal["high", "medium", "low"]
    rationale: str
    response_text: str = Field(min_length=1)
