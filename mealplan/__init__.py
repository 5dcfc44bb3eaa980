"""MealPlan - AI-backed meal generation for the weekly meal planner."""

__version__ = "0.1.0"
