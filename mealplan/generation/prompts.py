"""Prompt and response-schema construction for meal generation."""

from typing import Any

from mealplan.llm.response import Message, json_schema_format

from .models import DAY_LABELS, MEAL_TYPE_LABELS, GenerationParams, MealIcon

SCHEMA_NAME = "meal_generation"

ICON_DESCRIPTIONS = {
    MealIcon.BREAKFAST: "breakfast dishes (eggs, cereal, toast)",
    MealIcon.SALAD: "salads and vegetable dishes",
    MealIcon.MEAT: "meat dishes (chicken, beef, pork)",
    MealIcon.FISH: "fish and seafood",
    MealIcon.PASTA: "pasta dishes",
    MealIcon.SOUP: "soups",
    MealIcon.DESSERT: "desserts and sweets",
    MealIcon.FRUIT: "fruit, smoothies, fruit shakes",
    MealIcon.VEGETARIAN: "vegan and vegetarian dishes",
    MealIcon.SNACK: "snacks",
}

MEAL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "description": "Creative meal name",
        },
        "kcal": {
            "type": "number",
            "description": "Exact calorie count (within the requested range)",
        },
        "protein": {
            "type": "number",
            "description": "Exact protein amount in grams (within the requested range)",
        },
        "icon": {
            "type": "string",
            "description": "Meal icon category: " + ", ".join(i.value for i in MealIcon),
            "enum": [i.value for i in MealIcon],
        },
        "ingredients": {
            "type": "array",
            "description": "Ingredients with concrete quantities",
            "items": {"type": "string"},
            "minItems": 1,
        },
        "steps": {
            "type": "array",
            "description": "Step-by-step preparation instructions",
            "items": {"type": "string"},
            "minItems": 1,
        },
    },
    "required": ["name", "kcal", "protein", "icon", "ingredients", "steps"],
    "additionalProperties": False,
}


def build_system_prompt(language: str) -> str:
    return f"""You are a professional dietitian and chef with many years of experience.

Your task is to create detailed, healthy and tasty recipes that meet the user's requirements.

Guidelines:
- Create realistic, doable recipes
- Use easily available ingredients
- Give exact ingredient quantities
- Describe the preparation steps clearly
- Fit the meal to the given meal type and time of day
- Keep nutritional values (calories and protein) within the given ranges
- Care about variety and flavour
- Write every answer in {language}
- Always return valid JSON matching the schema"""


def build_user_prompt(params: GenerationParams) -> str:
    kcal, protein = params.kcal_range, params.protein_range
    icons = "\n".join(
        f"   - {icon.value}: {text}" for icon, text in ICON_DESCRIPTIONS.items()
    )

    return f"""Generate a meal meeting the following requirements:

Nutrition requirements:
- Calories: from {kcal.min} to {kcal.max} kcal
- Protein: from {protein.min} to {protein.max}g

Context:
- Day of week: {DAY_LABELS[params.day_of_week]}
- Meal type: {MEAL_TYPE_LABELS[params.meal_type]}

User preferences:
{params.description}

Generate a detailed recipe containing:
1. A creative, appetising meal name
2. Exact calorie and protein values (within the given ranges)
3. A fitting meal icon from the available categories:
{icons}
4. A list of ingredients with concrete quantities (e.g. "200g chicken breast", "1 tbsp olive oil")
5. Step-by-step preparation instructions

IMPORTANT: Return the answer as JSON matching the response_format schema."""


def build_messages(params: GenerationParams, language: str) -> list[Message]:
    """System message first, then the request-specific user message."""
    return [
        Message(role="system", content=build_system_prompt(language)),
        Message(role="user", content=build_user_prompt(params)),
    ]


def build_response_format() -> dict[str, Any]:
    return json_schema_format(SCHEMA_NAME, MEAL_SCHEMA)
