"""
Deterministic Oracles

Offline stand-ins for the live recipe and nutrient flows. They satisfy
the same contracts without any network call and always give the same
answer for the same request, which makes them suitable for tests and
for demo mode (ORACLE_BACKEND=stub).

They are template and lookup-table based, not a reimplementation of
what the model does.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from models.recipe import AlternateRecipe, GenerateRecipeInput, GenerateRecipeOutput, RecipeStep
from models.nutrition import (
    AnalyzeNutrientContentInput,
    AnalyzeNutrientContentOutput,
    IngredientNutrientAnalysis,
    NutrientInfo,
    RecipeNutrientAnalysis,
)
from .oracle import FlowInputError, FlowValidationError, NutrientOracle, RecipeOracle


QUANTITY_PREFIX = re.compile(
    r"^\s*[\d./]+\s*(?:g|grams?|kg|ml|l|cups?|tbsp|tsp|oz|lbs?|pieces?|slices?|cloves?)?\s+",
    re.IGNORECASE,
)

PANTRY_STAPLES = ["olive oil", "salt", "black pepper"]


@dataclass
class RecipeTemplate:
    """
    Skeleton of a dish: which ingredient categories it needs and the
    steps to cook it, with placeholders filled from the request.
    """
    name: str                               # "Baked {main} with Vegetables"
    required_categories: List[str]          # all must be present
    optional_categories: List[str]          # each present one adds to the score
    steps: List[Tuple[str, Optional[str]]]  # (step text, HH:MM:SS timer)
    health_score: float                     # 0-10, ranking weight


DEFAULT_TEMPLATES = [
    RecipeTemplate(
        name="Simple Stir Fry",
        required_categories=["protein", "vegetable"],
        optional_categories=["grain"],
        steps=[
            ("Prepare ingredients: {ingredients}.", None),
            ("Heat a pan with a little oil over medium-high heat.", None),
            ("Cook {item} until golden and cooked through.", "00:07:00"),
            ("Add the remaining ingredients and stir-fry until tender-crisp.", "00:04:00"),
            ("Season to taste and serve hot.", None),
        ],
        health_score=8.0,
    ),
    RecipeTemplate(
        name="Fresh Salad",
        required_categories=["vegetable"],
        optional_categories=["protein", "fruit"],
        steps=[
            ("Wash and chop {ingredients}.", None),
            ("Combine everything in a large bowl.", None),
            ("Dress, toss gently and let rest so the flavors meld.", "00:05:00"),
        ],
        health_score=7.0,
    ),
    RecipeTemplate(
        name="Baked {main} with Vegetables",
        required_categories=["protein", "vegetable"],
        optional_categories=["grain"],
        steps=[
            ("Preheat oven to 375 degrees F (190 degrees C).", None),
            ("Season {ingredients} and arrange on a baking sheet.", None),
            ("Bake until done.", "00:25:00"),
            ("Let rest before serving.", "00:05:00"),
        ],
        health_score=8.5,
    ),
    RecipeTemplate(
        name="Hearty {main} Soup",
        required_categories=["vegetable"],
        optional_categories=["protein", "grain"],
        steps=[
            ("Chop {ingredients} into bite-sized pieces.", None),
            ("Bring a pot of water or broth to a boil.", None),
            ("Add everything and simmer gently.", "00:30:00"),
            ("Adjust seasoning and serve.", None),
        ],
        health_score=8.0,
    ),
    RecipeTemplate(
        name="{main} Grain Bowl",
        required_categories=["grain"],
        optional_categories=["vegetable", "protein"],
        steps=[
            ("Rinse the {item} and cook it according to the package.", "00:15:00"),
            ("Meanwhile prepare {ingredients}.", None),
            ("Assemble the bowl and serve.", None),
        ],
        health_score=7.5,
    ),
]

FALLBACK_TEMPLATE = RecipeTemplate(
    name="Skillet {main}",
    required_categories=[],
    optional_categories=[],
    steps=[
        ("Prepare {ingredients}.", None),
        ("Cook everything in a skillet over medium heat, stirring often.", "00:10:00"),
        ("Season and serve.", None),
    ],
    health_score=5.0,
)

# Ingredient category mapping
INGREDIENT_CATEGORIES = {
    "protein": [
        "chicken", "fish", "salmon", "tuna", "tofu", "egg", "beef",
        "turkey", "shrimp", "pork", "lamb", "tempeh", "beans", "lentils",
    ],
    "vegetable": [
        "broccoli", "spinach", "carrot", "onion", "garlic", "tomato",
        "bell pepper", "zucchini", "cucumber", "lettuce", "cabbage",
        "mushroom", "asparagus", "green beans", "kale", "cauliflower", "potato",
    ],
    "grain": [
        "rice", "quinoa", "pasta", "bread", "oats", "barley",
        "couscous", "bulgur", "noodles", "flour",
    ],
    "fruit": [
        "apple", "banana", "orange", "berries", "mango", "grapes",
        "pineapple", "kiwi", "pear", "lemon",
    ],
    "dairy": [
        "milk", "cheese", "yogurt", "butter", "cream",
    ],
    "fat_oil": [
        "olive oil", "coconut oil", "avocado", "nuts", "seeds",
    ],
}

ALLERGEN_GROUPS = {
    "dairy": INGREDIENT_CATEGORIES["dairy"],
    "lactose": INGREDIENT_CATEGORIES["dairy"],
    "nuts": ["almond", "walnut", "pecan", "cashew", "peanut", "hazelnut", "nut"],
    "tree nuts": ["almond", "walnut", "pecan", "cashew", "hazelnut"],
    "gluten": ["wheat", "bread", "pasta", "flour", "couscous", "bulgur", "barley", "noodles"],
    "shellfish": ["shrimp", "prawn", "crab", "lobster"],
    "eggs": ["egg"],
}

# Nutrition estimates per 100g
NUTRITION_ESTIMATES = {
    "chicken": {"calories": 165, "protein_g": 31, "fat_g": 3.6, "carbs_g": 0, "fiber_g": 0,
                "sodium_mg": 74, "iron_mg": 1.0, "vitamin_c_mg": 0},
    "salmon": {"calories": 208, "protein_g": 20, "fat_g": 13, "carbs_g": 0, "fiber_g": 0,
               "sodium_mg": 59, "iron_mg": 0.3, "vitamin_c_mg": 0},
    "broccoli": {"calories": 34, "protein_g": 2.8, "fat_g": 0.4, "carbs_g": 7, "fiber_g": 2.6,
                 "sodium_mg": 33, "iron_mg": 0.7, "vitamin_c_mg": 89},
    "rice": {"calories": 130, "protein_g": 2.7, "fat_g": 0.3, "carbs_g": 28, "fiber_g": 0.4,
             "sodium_mg": 1, "iron_mg": 0.2, "vitamin_c_mg": 0},
    "spinach": {"calories": 23, "protein_g": 2.9, "fat_g": 0.4, "carbs_g": 3.6, "fiber_g": 2.2,
                "sodium_mg": 79, "iron_mg": 2.7, "vitamin_c_mg": 28},
    "egg": {"calories": 155, "protein_g": 13, "fat_g": 11, "carbs_g": 1.1, "fiber_g": 0,
            "sodium_mg": 124, "iron_mg": 1.8, "vitamin_c_mg": 0},
    "tofu": {"calories": 76, "protein_g": 8, "fat_g": 4.8, "carbs_g": 1.9, "fiber_g": 0.3,
             "sodium_mg": 7, "iron_mg": 5.4, "vitamin_c_mg": 0},
    "quinoa": {"calories": 120, "protein_g": 4.4, "fat_g": 1.9, "carbs_g": 21, "fiber_g": 2.8,
               "sodium_mg": 7, "iron_mg": 1.5, "vitamin_c_mg": 0},
    "tomato": {"calories": 18, "protein_g": 0.9, "fat_g": 0.2, "carbs_g": 3.9, "fiber_g": 1.2,
               "sodium_mg": 5, "iron_mg": 0.3, "vitamin_c_mg": 14},
    "olive oil": {"calories": 884, "protein_g": 0, "fat_g": 100, "carbs_g": 0, "fiber_g": 0,
                  "sodium_mg": 2, "iron_mg": 0.6, "vitamin_c_mg": 0},
}

# Fallback when an ingredient is not in the table: 1.2 kcal per gram
DEFAULT_CALORIES_PER_GRAM = 1.2

UNIT_GRAMS = {
    "g": 1, "gram": 1, "grams": 1,
    "kg": 1000,
    "ml": 1, "l": 1000,
    "cup": 240, "cups": 240,
    "tbsp": 15, "tsp": 5,
    "oz": 28.35, "lb": 453.6, "lbs": 453.6,
    "serving": 100, "servings": 100,
    "piece": 100, "pieces": 100,
}

QUANTITY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]*)")

MACROS = [("Protein", "protein_g", "g"), ("Carbohydrates", "carbs_g", "g"),
          ("Fat", "fat_g", "g"), ("Fiber", "fiber_g", "g")]
MICROS = [("Sodium", "sodium_mg", "mg"), ("Iron", "iron_mg", "mg"),
          ("Vitamin C", "vitamin_c_mg", "mg")]


def strip_quantity(item: str) -> str:
    """'200 g chicken breast' -> 'chicken breast'"""
    return QUANTITY_PREFIX.sub("", item).strip()


def split_ingredients(text: str) -> List[str]:
    names = [strip_quantity(part) for part in text.split(",")]
    return [name for name in names if name]


def split_allergies(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [part.strip().lower() for part in text.split(",") if part.strip()]


def _is_allergen(ingredient: str, allergy: str) -> bool:
    ing_lower = ingredient.lower()
    if allergy in ing_lower or ing_lower in allergy:
        return True
    # Category match (e.g., "dairy" -> "milk", "cheese")
    return any(kw in ing_lower for kw in ALLERGEN_GROUPS.get(allergy, []))


def categorize(ingredients: List[str]) -> Dict[str, List[str]]:
    """Categorize ingredients by food type."""
    result: Dict[str, List[str]] = {}
    for ingredient in ingredients:
        ing_lower = ingredient.lower()
        for category, keywords in INGREDIENT_CATEGORIES.items():
            if any(kw in ing_lower for kw in keywords):
                result.setdefault(category, []).append(ingredient)
                break
    return result


def rank_templates(categorized: Dict[str, List[str]]) -> List[RecipeTemplate]:
    """Templates whose required categories are present, best first."""
    scored = []
    for order, template in enumerate(DEFAULT_TEMPLATES):
        if not all(categorized.get(cat) for cat in template.required_categories):
            continue
        # Bonus for optional categories present
        score = template.health_score + 0.5 * sum(
            1 for cat in template.optional_categories if cat in categorized
        )
        scored.append((-score, order, template))
    return [template for _, _, template in sorted(scored, key=lambda s: (s[0], s[1]))]


class StubRecipeOracle(RecipeOracle):
    """Template-based recipe generation with allergy and strict-mode handling."""

    def generate_recipe(self, request: GenerateRecipeInput) -> GenerateRecipeOutput:
        supplied = split_ingredients(request.ingredients)
        if not supplied:
            raise FlowInputError("At least one ingredient is required")

        allergies = split_allergies(request.allergies)
        safe: List[str] = []
        conflicts: List[Tuple[str, str]] = []
        for ingredient in supplied:
            hit = next((a for a in allergies if _is_allergen(ingredient, a)), None)
            if hit:
                conflicts.append((ingredient, hit))
            else:
                safe.append(ingredient)

        if not safe:
            raise FlowValidationError("No ingredients remain after removing allergens")

        ranked = rank_templates(categorize(safe)) or [FALLBACK_TEMPLATE]
        template = ranked[0]

        ingredients = list(safe)
        if not request.strict_mode:
            ingredients += [s for s in PANTRY_STAPLES if s not in ingredients]

        main = safe[0]
        context = {"main": main.title(), "item": main, "ingredients": ", ".join(safe)}
        instructions = [
            RecipeStep(step=text.format(**context), timer=timer)
            for text, timer in template.steps
        ]

        name = template.name.format(**context)
        if "{main}" not in template.name:
            name = f"{name} with {' and '.join(safe[:2])}"

        alternates = [
            AlternateRecipe(
                name=alt.name.format(**context),
                description=f"A {alt.name.format(**context).lower()} built around {main}.",
            )
            for alt in (DEFAULT_TEMPLATES + [FALLBACK_TEMPLATE])
            if alt is not template
        ][:3]

        warning = None
        if conflicts:
            warning = "; ".join(
                f"Left out {ingredient} because of your {allergy} allergy"
                for ingredient, allergy in conflicts
            ) + ". Check labels of any other products you use."

        return GenerateRecipeOutput(
            recipe_name=name,
            ingredients=ingredients,
            instructions=instructions,
            alternate_recipes=alternates,
            allergy_warning=warning,
        )


def quantity_to_grams(quantity: str) -> float:
    """
    Convert a free-form quantity to grams.

    "200 g" -> 200, "1 cup" -> 240, "2" -> 200 (servings), unknown -> 100
    """
    match = QUANTITY_PATTERN.search(quantity or "")
    if not match:
        return 100.0
    amount = float(match.group(1))
    unit = match.group(2).lower()
    if not unit:
        return amount * UNIT_GRAMS["serving"]
    return amount * UNIT_GRAMS.get(unit, UNIT_GRAMS["serving"])


def lookup_estimate(name: str) -> Optional[Dict[str, float]]:
    ing_lower = name.lower()
    for key, nutrition in NUTRITION_ESTIMATES.items():
        if key in ing_lower:
            return nutrition
    return None


class StubNutrientOracle(NutrientOracle):
    """Lookup-table nutrient estimates (values per 100g)."""

    def analyze_nutrients(
        self, request: AnalyzeNutrientContentInput
    ) -> AnalyzeNutrientContentOutput:
        totals: Dict[str, float] = {key: 0.0 for _, key, _ in MACROS + MICROS}
        total_calories = 0.0
        analyses = []

        for item in request.ingredients:
            grams = quantity_to_grams(item.quantity)
            estimate = lookup_estimate(item.name)
            factor = grams / 100

            if estimate is None:
                calories = grams * DEFAULT_CALORIES_PER_GRAM
                values = {key: 0.0 for key in totals}
            else:
                calories = estimate["calories"] * factor
                values = {key: estimate.get(key, 0.0) * factor for key in totals}

            total_calories += calories
            for key, value in values.items():
                totals[key] += value

            analyses.append(IngredientNutrientAnalysis(
                name=item.name,
                macronutrients=self._nutrients(MACROS, values),
                micronutrients=self._nutrients(MICROS, values),
            ))

        return AnalyzeNutrientContentOutput(
            ingredient_analyses=analyses,
            recipe_analysis=RecipeNutrientAnalysis(
                recipe_name=request.recipe_name,
                total_calories=round(total_calories, 1),
                macronutrients=self._nutrients(MACROS, totals),
                micronutrients=self._nutrients(MICROS, totals),
                healthiness_assessment=self._assess(total_calories, totals),
            ),
        )

    @staticmethod
    def _nutrients(spec, values: Dict[str, float]) -> List[NutrientInfo]:
        return [
            NutrientInfo(name=label, amount=f"{values[key]:.1f}", unit=unit)
            for label, key, unit in spec
        ]

    @staticmethod
    def _assess(calories: float, totals: Dict[str, float]) -> str:
        notes = []
        if calories > 0:
            protein_share = totals["protein_g"] * 4 / calories
            if protein_share >= 0.25:
                notes.append("High in protein relative to its calories.")
            fat_share = totals["fat_g"] * 9 / calories
            if fat_share > 0.4:
                notes.append("Fat provides a large share of the calories; consider less oil.")
        if totals["fiber_g"] >= 5:
            notes.append("Good source of fiber.")
        if totals["sodium_mg"] > 800:
            notes.append("Sodium is on the high side.")
        if not notes:
            notes.append("A balanced dish in moderate portions.")
        return " ".join(notes) + " These are estimates, not medical advice."
