"""Meal generation service.

Turns a :class:`GenerationParams` request into a validated
:class:`GeneratedMeal` using an OpenRouter structured-output completion.
"""

import json
import math
from typing import Any

from jsonschema import validate
from jsonschema.exceptions import ValidationError as SchemaValidationError

from mealplan.llm.openrouter import OpenRouterClient, create_openrouter_client
from mealplan.llm.response import ChatOptions, LLMResponse
from mealplan.logger import get_logger

from .errors import GenerationFailure, MealGenerationError
from .models import GeneratedMeal, GenerationParams, MealIcon, NutrientRange
from .prompts import MEAL_SCHEMA, build_messages, build_response_format

logger = get_logger(__name__)

DEFAULT_MODEL = "openai/gpt-4o-mini"
GENERATION_PARAMS = {"temperature": 0.8, "max_tokens": 1500}
DEFAULT_LANGUAGE = "Polish"

KCAL_LIMITS = (1, 3000)
PROTEIN_LIMITS = (1, 300)
MAX_DESCRIPTION_LENGTH = 500


def _within(requested: NutrientRange, limits: tuple[int, int]) -> bool:
    low, high = limits
    return all(
        math.isfinite(value) and low <= value <= high
        for value in (requested.min, requested.max)
    )


def validate_params(params: GenerationParams) -> None:
    """Check generation parameters before anything is sent to the model.

    Raises:
        MealGenerationError: INVALID_PARAMS with a human-readable reason
    """
    kcal, protein = params.kcal_range, params.protein_range

    if not _within(kcal, KCAL_LIMITS):
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS,
            f"Calorie range must be between {KCAL_LIMITS[0]} and {KCAL_LIMITS[1]} kcal",
        )
    if kcal.min >= kcal.max:
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS,
            "Minimum calories must be less than maximum calories",
        )

    if not _within(protein, PROTEIN_LIMITS):
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS,
            f"Protein range must be between {PROTEIN_LIMITS[0]} and {PROTEIN_LIMITS[1]}g",
        )
    if protein.min >= protein.max:
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS,
            "Minimum protein must be less than maximum protein",
        )

    if not params.description or not params.description.strip():
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS, "Description cannot be empty"
        )
    if len(params.description) > MAX_DESCRIPTION_LENGTH:
        raise MealGenerationError(
            GenerationFailure.INVALID_PARAMS,
            f"Description is too long (max {MAX_DESCRIPTION_LENGTH} characters)",
        )


def parse_meal(content: str) -> GeneratedMeal:
    """Parse the assistant reply into a GeneratedMeal.

    Raises:
        MealGenerationError: PARSE, chained to the underlying error
    """
    try:
        data: Any = json.loads(content)
        validate(instance=data, schema=MEAL_SCHEMA)

        if not data["name"].strip():
            raise ValueError("Invalid or missing 'name' field")
        if data["kcal"] <= 0:
            raise ValueError("Invalid or missing 'kcal' field")
        if data["protein"] <= 0:
            raise ValueError("Invalid or missing 'protein' field")

        return GeneratedMeal(
            name=data["name"],
            kcal=data["kcal"],
            protein=data["protein"],
            icon=MealIcon(data["icon"]),
            ingredients=tuple(data["ingredients"]),
            steps=tuple(data["steps"]),
        )
    except SchemaValidationError as e:
        raise MealGenerationError(
            GenerationFailure.PARSE, f"Failed to parse AI response: {e.message}"
        ) from e
    except (ValueError, TypeError) as e:
        # json.JSONDecodeError is a ValueError
        raise MealGenerationError(
            GenerationFailure.PARSE, f"Failed to parse AI response: {e}"
        ) from e


def _check_nutrient(label: str, unit: str, value: float, requested: NutrientRange) -> None:
    if not requested.accepts(value):
        raise MealGenerationError(
            GenerationFailure.NUTRIENT_RANGE,
            f"Generated meal {label} ({value}{unit}) outside acceptable range "
            f"({requested.min}-{requested.max}{unit})",
        )


def validate_nutrients(meal: GeneratedMeal, params: GenerationParams) -> None:
    """Reject meals whose kcal/protein fall outside the requested ranges (10% leeway).

    Raises:
        MealGenerationError: NUTRIENT_RANGE naming the value and the range
    """
    _check_nutrient("calories", "", meal.kcal, params.kcal_range)
    _check_nutrient("protein", "g", meal.protein, params.protein_range)


class MealGenerationService:
    """Generates meals with an LLM via OpenRouter structured output.

    Args:
        client: OpenRouter client; built from the environment if omitted
        model: Model used for every generation
        language: Language the recipe is written in
    """

    def __init__(
        self,
        client: OpenRouterClient | None = None,
        model: str = DEFAULT_MODEL,
        language: str = DEFAULT_LANGUAGE,
    ):
        self.client = client if client is not None else create_openrouter_client(
            default_model=model,
            default_params=GENERATION_PARAMS,
        )
        self.model = model
        self.language = language

    def generate_meal(self, params: GenerationParams | dict[str, Any]) -> GeneratedMeal:
        """Generate a meal matching ``params``.

        Args:
            params: Generation parameters, or their JSON request-body form

        Returns:
            Validated meal; kcal and protein are returned unrounded

        Raises:
            MealGenerationError: For every failure, with the cause chained
        """
        try:
            if isinstance(params, dict):
                params = GenerationParams.from_dict(params)

            logger.info(
                "generation.start",
                event="generation.start",
                day_of_week=params.day_of_week.value,
                meal_type=params.meal_type.value,
                model=self.model,
            )

            validate_params(params)

            response = self.client.chat(
                build_messages(params, self.language),
                ChatOptions(
                    model=self.model,
                    params=dict(GENERATION_PARAMS),
                    response_format=build_response_format(),
                ),
            )

            meal = self._parse_response(response)
            validate_nutrients(meal, params)

        except MealGenerationError as e:
            self._log_failure(e)
            raise
        except Exception as e:
            error = MealGenerationError(
                GenerationFailure.UPSTREAM, f"Failed to generate meal with AI: {e}"
            )
            self._log_failure(error, cause=e)
            raise error from e

        logger.info(
            "generation.success",
            event="generation.success",
            meal_name=meal.name,
            kcal=meal.kcal,
            protein=meal.protein,
            icon=meal.icon.value,
            total_tokens=response.usage.total_tokens,
        )
        return meal

    def _parse_response(self, response: LLMResponse) -> GeneratedMeal:
        return parse_meal(response.message.content)

    def _log_failure(self, error: MealGenerationError, cause: BaseException | None = None) -> None:
        cause = cause or error.cause
        logger.warning(
            "generation.failed",
            event="generation.failed",
            failure=error.kind.value,
            error_message=str(error),
            cause_type=type(cause).__name__ if cause else None,
        )


def create_meal_generation_service(
    client: OpenRouterClient | None = None,
) -> MealGenerationService:
    """Convenience factory mirroring ``create_openrouter_client``."""
    return MealGenerationService(client)
