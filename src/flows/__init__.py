# Flows Package - model-backed recipe and nutrient capabilities
from .oracle import (
    RecipeOracle,
    NutrientOracle,
    FlowError,
    FlowInputError,
    FlowExecutionError,
    FlowValidationError,
)
from .base import PromptFlow, extract_json
from .generate_recipe import GenerateRecipeFlow
from .analyze_nutrient_content import AnalyzeNutrientContentFlow
from .stub_oracle import StubRecipeOracle, StubNutrientOracle

__all__ = [
    "RecipeOracle",
    "NutrientOracle",
    "FlowError",
    "FlowInputError",
    "FlowExecutionError",
    "FlowValidationError",
    "PromptFlow",
    "extract_json",
    "GenerateRecipeFlow",
    "AnalyzeNutrientContentFlow",
    "StubRecipeOracle",
    "StubNutrientOracle",
]
