"""
Meal generation types.

Request parameters, the generated meal, and the fixed vocabularies (days,
meal slots, icons) shared with the planner grid.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import GenerationFailure, MealGenerationError


class DayOfWeek(Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class MealType(Enum):
    BREAKFAST = "breakfast"
    SECOND_BREAKFAST = "second_breakfast"
    LUNCH = "lunch"
    SNACK = "snack"
    DINNER = "dinner"


class MealIcon(Enum):
    """Icon categories a generated meal can be tagged with."""
    BREAKFAST = "breakfast"  # eggs, cereal, toast
    SALAD = "salad"
    MEAT = "meat"
    FISH = "fish"  # incl. seafood
    PASTA = "pasta"
    SOUP = "soup"
    DESSERT = "dessert"
    FRUIT = "fruit"  # incl. smoothies
    VEGETARIAN = "vegetarian"  # incl. vegan
    SNACK = "snack"


DAY_LABELS = {
    DayOfWeek.MONDAY: "Poniedziałek",
    DayOfWeek.TUESDAY: "Wtorek",
    DayOfWeek.WEDNESDAY: "Środa",
    DayOfWeek.THURSDAY: "Czwartek",
    DayOfWeek.FRIDAY: "Piątek",
    DayOfWeek.SATURDAY: "Sobota",
    DayOfWeek.SUNDAY: "Niedziela",
}

MEAL_TYPE_LABELS = {
    MealType.BREAKFAST: "Śniadanie",
    MealType.SECOND_BREAKFAST: "Drugie śniadanie",
    MealType.LUNCH: "Obiad",
    MealType.SNACK: "Podwieczorek",
    MealType.DINNER: "Kolacja",
}


@dataclass(frozen=True)
class NutrientRange:
    """Inclusive requested range for one nutrient."""

    min: float
    max: float

    @property
    def tolerance(self) -> float:
        """Allowed overshoot on either side: 10% of the range width."""
        return (self.max - self.min) * 0.1

    def accepts(self, value: float) -> bool:
        return self.min - self.tolerance <= value <= self.max + self.tolerance

    @classmethod
    def from_dict(cls, data: Any, field_name: str) -> "NutrientRange":
        if not isinstance(data, dict) or "min" not in data or "max" not in data:
            raise MealGenerationError(
                GenerationFailure.INVALID_PARAMS,
                f"'{field_name}' must be an object with 'min' and 'max'",
            )
        low, high = data["min"], data["max"]
        for value in (low, high):
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)
            ):
                raise MealGenerationError(
                    GenerationFailure.INVALID_PARAMS,
                    f"'{field_name}' bounds must be finite numbers",
                )
        return cls(min=low, max=high)


def _coerce_choice(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS, f"Invalid {field_name}: {value!r}"
        ) from None


@dataclass(frozen=True)
class GenerationParams:
    """A single AI meal generation request.

    ``day_of_week`` and ``meal_type`` also accept their string values, and
    the ranges accept ``{"min": ..., "max": ...}`` mappings.
    """

    kcal_range: NutrientRange
    protein_range: NutrientRange
    description: str
    day_of_week: DayOfWeek
    meal_type: MealType

    def __post_init__(self):
        for name in ("kcal_range", "protein_range"):
            value = getattr(self, name)
            if not isinstance(value, NutrientRange):
                object.__setattr__(self, name, NutrientRange.from_dict(value, name))
        object.__setattr__(
            self, "day_of_week", _coerce_choice(DayOfWeek, self.day_of_week, "day_of_week")
        )
        object.__setattr__(
            self, "meal_type", _coerce_choice(MealType, self.meal_type, "meal_type")
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenerationParams":
        """Build params from a JSON request body.

        Raises:
            MealGenerationError: INVALID_PARAMS for missing or malformed fields
        """
        if not isinstance(data, dict):
            raise MealGenerationError(
                GenerationFailure.INVALID_PARAMS, "Request body must be an object"
            )

        description = data.get("description")
        if not isinstance(description, str):
            raise MealGenerationError(
                GenerationFailure.INVALID_PARAMS, "Description must be a string"
            )

        return cls(
            kcal_range=data.get("kcal_range"),
            protein_range=data.get("protein_range"),
            description=description,
            day_of_week=data.get("day_of_week"),
            meal_type=data.get("meal_type"),
        )


@dataclass(frozen=True)
class GeneratedMeal:
    """Meal proposal returned by the model, after validation."""

    name: str
    kcal: float
    protein: float
    icon: MealIcon
    ingredients: tuple[str, ...]
    steps: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "kcal": self.kcal,
            "protein": self.protein,
            "icon": self.icon.value,
            "ingredients": list(self.ingredients),
            "steps": list(self.steps),
        }
