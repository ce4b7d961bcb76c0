"""
Nutrient Analysis Schemas

Typed input and output shapes of the nutrient analysis flow.

Nutrient amounts stay free-form strings ("10g", "5 mg", "12") exactly as
the model returns them. Anything numeric must go through
presentation.nutrient_display.parse_amount first.
"""

from typing import List

from pydantic import Field, field_validator

from .recipe import FlowModel


class NutrientIngredient(FlowModel):
    """An ingredient with the quantity used in the recipe."""
    name: str = Field(..., description="The name of the ingredient.")
    quantity: str = Field(
        ..., description="The quantity of the ingredient (e.g., 100g, 2 cups)."
    )


class AnalyzeNutrientContentInput(FlowModel):
    recipe_name: str = Field(..., description="The name of the recipe.")
    ingredients: List[NutrientIngredient] = Field(
        ..., min_length=1, description="A list of ingredients in the recipe."
    )


class NutrientInfo(FlowModel):
    name: str = Field(..., description="The name of the nutrient.")
    amount: str = Field(..., description="The amount of the nutrient (e.g., 10g, 5mg).")
    unit: str = Field(
        "", description="The unit of measurement for the nutrient (e.g., g, mg, mcg)."
    )

    @field_validator("amount", "unit", mode="before")
    @classmethod
    def coerce_to_text(cls, value):
        # Models frequently answer 12 instead of "12"
        if value is None:
            return ""
        return str(value)


class IngredientNutrientAnalysis(FlowModel):
    name: str = Field(..., description="The name of the ingredient.")
    macronutrients: List[NutrientInfo] = Field(
        default_factory=list, description="The macronutrient content of the ingredient."
    )
    micronutrients: List[NutrientInfo] = Field(
        default_factory=list, description="The micronutrient content of the ingredient."
    )


class RecipeNutrientAnalysis(FlowModel):
    recipe_name: str = Field(..., description="The name of the recipe.")
    total_calories: float = Field(
        ..., ge=0, description="The total number of calories in the recipe."
    )
    macronutrients: List[NutrientInfo] = Field(
        default_factory=list, description="The total macronutrient content of the recipe."
    )
    micronutrients: List[NutrientInfo] = Field(
        default_factory=list, description="The total micronutrient content of the recipe."
    )
    healthiness_assessment: str = Field(
        ...,
        description="An AI assessment of the recipe's healthiness, including any potential concerns.",
    )


class AnalyzeNutrientContentOutput(FlowModel):
    ingredient_analyses: List[IngredientNutrientAnalysis] = Field(
        default_factory=list, description="A list of nutrient analyses for each ingredient."
    )
    recipe_analysis: RecipeNutrientAnalysis = Field(
        ..., description="The nutrient analysis for the entire recipe."
    )
