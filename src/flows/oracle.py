"""
Oracle Capabilities

The recipe and nutrient "business logic" is a remote inference call.
These interfaces describe what the rest of the system may ask of it;
implementations are either live model flows or deterministic stubs.
"""

from abc import ABC, abstractmethod

from models.recipe import GenerateRecipeInput, GenerateRecipeOutput
from models.nutrition import AnalyzeNutrientContentInput, AnalyzeNutrientContentOutput


class FlowError(Exception):
    """Base class for failures of a flow call."""


class FlowInputError(FlowError):
    """The request was rejected before reaching the model."""


class FlowExecutionError(FlowError):
    """The model could not be reached or returned an error."""


class FlowValidationError(FlowError):
    """The model replied, but the reply does not match the output schema."""


class RecipeOracle(ABC):
    """Turns an ingredient request into a structured recipe."""

    @abstractmethod
    def generate_recipe(self, request: GenerateRecipeInput) -> GenerateRecipeOutput:
        """
        Generate a recipe.

        Raises:
            FlowError: on any failure; callers treat it as recoverable
        """
        pass


class NutrientOracle(ABC):
    """Estimates the nutrient content of a quantified ingredient list."""

    @abstractmethod
    def analyze_nutrients(
        self, request: AnalyzeNutrientContentInput
    ) -> AnalyzeNutrientContentOutput:
        """
        Analyze a recipe's nutrients.

        Raises:
            FlowError: on any failure; callers treat it as recoverable
        """
        pass
