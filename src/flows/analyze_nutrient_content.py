"""
Nutrient Analysis Flow

Analyzes the nutrient content of a recipe: per-ingredient and total
macro/micronutrients, total calories and a healthiness assessment.
"""

from models.nutrition import AnalyzeNutrientContentInput, AnalyzeNutrientContentOutput
from .base import PromptFlow
from .oracle import NutrientOracle


class AnalyzeNutrientContentFlow(
    PromptFlow[AnalyzeNutrientContentInput, AnalyzeNutrientContentOutput],
    NutrientOracle,
):
    """Nutrient analysis backed by the live model."""

    name = "analyzeNutrientContentFlow"
    input_model = AnalyzeNutrientContentInput
    output_model = AnalyzeNutrientContentOutput
    system_prompt = "nutrition_analyst"
    logger_name = "NutrientFlow"

    def render_prompt(self, request: AnalyzeNutrientContentInput) -> str:
        ingredient_lines = "\n".join(
            f"- Name: {item.name}, Quantity: {item.quantity}"
            for item in request.ingredients
        )
        return f"""Analyze the nutrient content of the following recipe:

Recipe Name: {request.recipe_name}

Ingredients:
{ingredient_lines}

Analyze the macronutrient and micronutrient content of each ingredient, as well as the final recipe.

Also, provide an AI assessment of the recipe's healthiness, including the total calorie count.

For every nutrient give its name, amount and unit, e.g.
{{"name": "Protein", "amount": "31", "unit": "g"}}

Macronutrients should include at least Protein, Carbohydrates, Fat and Fiber.
Micronutrients should include the most relevant vitamins and minerals (e.g. Vitamin C, Iron, Calcium, Sodium, Potassium).
totalCalories is a number in kcal for the whole recipe."""

    def analyze_nutrients(
        self, request: AnalyzeNutrientContentInput
    ) -> AnalyzeNutrientContentOutput:
        return self.run(request)
