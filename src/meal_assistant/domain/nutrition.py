"""Nutrition domain models."""

from collections.abc import Iterable
from dataclasses import dataclass

NUTRIENT_FIELDS = ("calories", "protein_g", "carbs_g", "fat_g", "fiber_g")


@dataclass(frozen=True)
class MacroProfile:
    """Macronutrient profile for a food item or a whole meal."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float = 0.0

    def as_dict(self) -> dict[str, float]:
        """Return the nutrient values keyed by field name."""
        return {name: getattr(self, name) for name in NUTRIENT_FIELDS}


ZERO_MACROS = MacroProfile(0.0, 0.0, 0.0, 0.0, 0.0)


def sum_macros(profiles: Iterable[MacroProfile]) -> MacroProfile:
    """Sum nutrient values field by field."""
    total = ZERO_MACROS
    for profile in profiles:
        total = MacroProfile(
            calories=total.calories + profile.calories,
            protein_g=total.protein_g + profile.protein_g,
            carbs_g=total.carbs_g + profile.carbs_g,
            fat_g=total.fat_g + profile.fat_g,
            fiber_g=total.fiber_g + profile.fiber_g,
        )
    return total
