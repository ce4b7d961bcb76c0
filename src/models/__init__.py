# Models Package
from .duration import parse_duration, normalize_timer_text
from .recipe import (
    FlowModel,
    GenerateRecipeInput,
    GenerateRecipeOutput,
    RecipeStep,
    AlternateRecipe,
)
from .nutrition import (
    NutrientIngredient,
    AnalyzeNutrientContentInput,
    AnalyzeNutrientContentOutput,
    NutrientInfo,
    IngredientNutrientAnalysis,
    RecipeNutrientAnalysis,
)

__all__ = [
    # Durations
    "parse_duration", "normalize_timer_text",
    # Recipe generation
    "FlowModel", "GenerateRecipeInput", "GenerateRecipeOutput",
    "RecipeStep", "AlternateRecipe",
    # Nutrient analysis
    "NutrientIngredient", "AnalyzeNutrientContentInput",
    "AnalyzeNutrientContentOutput", "NutrientInfo",
    "IngredientNutrientAnalysis", "RecipeNutrientAnalysis",
]
