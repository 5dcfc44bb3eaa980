"""AI meal generation on top of the OpenRouter client."""

from .errors import GenerationFailure, MealGenerationError
from .models import (
    DayOfWeek,
    GeneratedMeal,
    GenerationParams,
    MealIcon,
    MealType,
    NutrientRange,
)
from .service import MealGenerationService, create_meal_generation_service

__all__ = [
    "DayOfWeek",
    "GeneratedMeal",
    "GenerationFailure",
    "GenerationParams",
    "MealGenerationError",
    "MealGenerationService",
    "MealIcon",
    "MealType",
    "NutrientRange",
    "create_meal_generation_service",
]
