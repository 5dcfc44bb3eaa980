"""Meal generation error type."""

from enum import Enum


class GenerationFailure(Enum):
    """What stage of meal generation failed."""

    INVALID_PARAMS = "invalid_params"
    PARSE = "parse_error"
    NUTRIENT_RANGE = "nutrient_out_of_range"
    UPSTREAM = "upstream_error"


class MealGenerationError(Exception):
    """Single user-facing failure for ``generate_meal``.

    The underlying exception, if any, is available as ``cause`` (the
    ``__cause__`` of the exception chain).
    """

    def __init__(self, kind: GenerationFailure, message: str):
        super().__init__(message)
        self.kind = kind

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__
