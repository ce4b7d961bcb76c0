"""
Recipe Generation Flow

Generates a recipe from the ingredients in the fridge, respecting
allergies and strict mode, with step-wise instructions (timers on
waiting steps) and three alternate recipes.
"""

from models.recipe import GenerateRecipeInput, GenerateRecipeOutput
from .base import PromptFlow
from .oracle import RecipeOracle


STRICT_MODE_RULE = (
    "STRICT MODE: Use ONLY the ingredients listed above. Do not add any other "
    "ingredient, not even salt, oil or water, unless it is listed."
)

RELAXED_MODE_RULE = (
    "You may add common pantry staples (salt, pepper, oil, water) and a few "
    "complementary ingredients if they make the dish better."
)

EXAMPLE_OUTPUT = """{
  "recipeName": "Brown Butter Cookies",
  "ingredients": ["butter", "brown sugar", "white sugar", "flour"],
  "instructions": [
    {"step": "Preheat oven to 375 degrees F (190 degrees C)."},
    {"step": "In a large bowl, cream together the butter, brown sugar, and white sugar."},
    {"step": "Bake until edges are nicely browned.", "timer": "00:10:00"}
  ],
  "alternateRecipes": [
    {"name": "Chocolate Chip Cookies", "description": "Classic chocolate chip cookies, perfect for a sweet treat."},
    {"name": "Peanut Butter Cookies", "description": "Classic peanut butter cookies, perfect for a sweet treat."},
    {"name": "Oatmeal Cookies", "description": "Classic oatmeal cookies, perfect for a sweet treat."}
  ],
  "allergyWarning": null
}"""


class GenerateRecipeFlow(PromptFlow[GenerateRecipeInput, GenerateRecipeOutput], RecipeOracle):
    """Recipe generation backed by the live model."""

    name = "generateRecipeFlow"
    input_model = GenerateRecipeInput
    output_model = GenerateRecipeOutput
    system_prompt = "recipe_chef"
    logger_name = "RecipeFlow"

    def render_prompt(self, request: GenerateRecipeInput) -> str:
        allergies = (request.allergies or "").strip() or "None"
        mode_rule = STRICT_MODE_RULE if request.strict_mode else RELAXED_MODE_RULE

        lines = [
            "Generate a recipe based on the ingredients provided, taking into account any specified allergies.",
            "",
            f"Ingredients: {request.ingredients}",
            f"Allergies (if any): {allergies}",
        ]
        if request.preferences:
            lines.append(f"Nutrient preferences: {request.preferences}")

        lines += [
            "",
            mode_rule,
            "",
            "If an ingredient conflicts with an allergy, leave it out. If the dish still "
            "may contain an allergen, explain it in allergyWarning; otherwise set allergyWarning to null.",
            "",
            "Instructions should be provided step by step. If a step requires waiting "
            "(baking, simmering, resting, marinating), include a timer in HH:MM:SS format. "
            "Steps that need no waiting have no timer.",
            "",
            "Also provide a list of 3 alternative recipes that can be made with the given ingredients.",
            "",
            "Example of the expected JSON shape:",
            EXAMPLE_OUTPUT,
        ]
        return "\n".join(lines)

    def generate_recipe(self, request: GenerateRecipeInput) -> GenerateRecipeOutput:
        return self.run(request)
