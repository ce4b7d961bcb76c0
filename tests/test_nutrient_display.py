"""
Tests for nutrient display helpers and recipe views

Tests cover:
- Parsing free-form nutrient amounts
- Looking nutrients up by (aliased) name
- Daily-value bars and the calorie meter
- Recipe card and nutrient panel projections
"""

import pytest

from client.reassociation import reassociate_quantities
from client.step_timer import TimerBoard
from models.nutrition import (
    AnalyzeNutrientContentOutput,
    IngredientNutrientAnalysis,
    NutrientInfo,
    RecipeNutrientAnalysis,
)
from models.recipe import GenerateRecipeOutput
from presentation.nutrient_display import (
    build_nutrient_bar,
    calorie_meter,
    canonical_name,
    convert_amount,
    extract_unit,
    find_nutrient_amount,
    parse_amount,
)
from presentation.recipe_view import nutrient_panel, recipe_card


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def nutrients():
    return [
        NutrientInfo(name="Protein", amount="12g", unit="g"),
        NutrientInfo(name="Total Carbohydrates", amount="30", unit="g"),
        NutrientInfo(name="Fat", amount="trace", unit="g"),
    ]


@pytest.fixture
def recipe():
    return GenerateRecipeOutput.model_validate({
        "recipeName": "Rice Bowl",
        "ingredients": ["rice", "egg"],
        "instructions": [
            {"step": "Cook the rice.", "timer": "00:15:00"},
            {"step": "Top with egg."},
        ],
        "alternateRecipes": [{"name": "Fried Rice", "description": "Crispy."}],
    })


@pytest.fixture
def analysis():
    return AnalyzeNutrientContentOutput(
        ingredient_analyses=[
            IngredientNutrientAnalysis(
                name="rice",
                macronutrients=[NutrientInfo(name="Carbs", amount="28 g")],
            )
        ],
        recipe_analysis=RecipeNutrientAnalysis(
            recipe_name="Rice Bowl",
            total_calories=400,
            macronutrients=[NutrientInfo(name="Protein", amount="12", unit="g")],
            micronutrients=[NutrientInfo(name="Sodium", amount="1,200 mg")],
            healthiness_assessment="Fine.",
        ),
    )


# =============================================================================
# PARSING TESTS
# =============================================================================

class TestParseAmount:
    """Tests for reading numbers out of model output."""

    @pytest.mark.parametrize("value,expected", [
        ("12", 12.0),
        ("12g", 12.0),
        ("12.5 mg", 12.5),
        ("1,200 mg", 1200.0),
        ("12,000,000 mcg", 12000000.0),
        ("12,5 g", 12.5),
        ("~5 g", 5.0),
        ("5-7 g", 5.0),
        (7, 7.0),
        (2.5, 2.5),
    ])
    def test_parses(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["trace", "", None, "n/a", True, float("nan"), -3])
    def test_unparsable_is_zero(self, value):
        assert parse_amount(value) == 0.0

    def test_extract_unit(self):
        assert extract_unit("12.5 mg") == "mg"
        assert extract_unit("12g") == "g"
        assert extract_unit("12", "MCG") == "mcg"
        assert extract_unit("12") == ""

    def test_extract_spelled_out_unit(self):
        assert extract_unit("5", "milligrams") == "mg"
        assert extract_unit("5 Grams") == "g"
        assert extract_unit("40 micrograms") == "mcg"
        assert extract_unit("3 µg") == "mcg"
        assert extract_unit("250", "Calories") == "kcal"

    def test_convert_amount(self):
        assert convert_amount(1, "g", "mg") == 1000
        assert convert_amount(500, "mcg", "mg") == pytest.approx(0.5)
        assert convert_amount(1, "kcal", "g") is None


class TestFindNutrient:
    """Tests for nutrient lookup by name."""

    def test_found(self, nutrients):
        assert find_nutrient_amount(nutrients, "protein") == 12.0

    def test_alias(self, nutrients):
        assert find_nutrient_amount(nutrients, "carbohydrates") == 30.0
        assert canonical_name("Dietary Fiber") == "fiber"
        assert canonical_name("Vitamin C (ascorbic acid)") == "vitamin c"

    def test_missing_is_zero(self, nutrients):
        """Should give 0 instead of failing for a nutrient that is not listed."""
        assert find_nutrient_amount(nutrients, "fiber") == 0.0

    def test_unreadable_is_zero(self, nutrients):
        assert find_nutrient_amount(nutrients, "fat") == 0.0

    def test_empty_list(self):
        assert find_nutrient_amount([], "protein") == 0.0
        assert find_nutrient_amount(None, "protein") == 0.0


# =============================================================================
# BAR AND METER TESTS
# =============================================================================

class TestNutrientBars:
    """Tests for daily-value bars."""

    def test_percent_daily_value(self):
        bar = build_nutrient_bar(NutrientInfo(name="Protein", amount="12g", unit="g"))
        assert bar.percent_daily_value == 24.0
        assert bar.label == "Protein: 12g (24% DV)"

    def test_unit_from_amount(self):
        bar = build_nutrient_bar(NutrientInfo(name="Iron", amount="5 mg"))
        assert bar.unit == "mg"
        assert bar.percent_daily_value == 27.8

    def test_spelled_out_unit_gets_daily_value(self):
        bar = build_nutrient_bar(NutrientInfo(name="Iron", amount="9", unit="milligrams"))
        assert bar.unit == "mg"
        assert bar.percent_daily_value == 50.0

    def test_unit_conversion(self):
        bar = build_nutrient_bar(NutrientInfo(name="Vitamin C", amount="0.09", unit="g"))
        assert bar.percent_daily_value == 100.0

    def test_width_capped(self):
        bar = build_nutrient_bar(NutrientInfo(name="Sodium", amount="4600", unit="mg"))
        assert bar.percent_daily_value == 200.0
        assert bar.width_percent == 100.0

    def test_unknown_nutrient_has_no_bar_width(self):
        bar = build_nutrient_bar(NutrientInfo(name="Lycopene", amount="3", unit="mg"))
        assert bar.percent_daily_value is None
        assert bar.width_percent == 0.0
        assert bar.label == "Lycopene: 3mg"

    def test_incomparable_units(self):
        bar = build_nutrient_bar(NutrientInfo(name="Protein", amount="12", unit="kcal"))
        assert bar.percent_daily_value is None


class TestCalorieMeter:
    """Tests for the calorie meter."""

    @pytest.mark.parametrize("calories,level", [
        (400, "low"),
        (1000, "moderate"),
        (1500, "high"),
    ])
    def test_levels(self, calories, level):
        assert calorie_meter(calories).level == level

    def test_percent_capped(self):
        reading = calorie_meter(5000)
        assert reading.percent == 100.0
        assert reading.level == "high"

    def test_string_total(self):
        assert calorie_meter("500 kcal").value == 500.0

    def test_custom_target(self):
        reading = calorie_meter(500, target=1000)
        assert reading.percent == 50.0
        assert reading.maximum == 1000.0

    def test_bad_target_uses_default(self):
        assert calorie_meter(500, target=0).maximum == 2000.0


# =============================================================================
# VIEW TESTS
# =============================================================================

class TestRecipeViews:
    """Tests for JSON projections."""

    def test_recipe_card(self, recipe):
        board = TimerBoard.for_steps(recipe.instructions, clock=lambda: 0.0)
        quantities = reassociate_quantities(recipe.ingredients, ())
        card = recipe_card(recipe, quantities, board)

        assert card["recipe_name"] == "Rice Bowl"
        assert [i["quantity"] for i in card["ingredients"]] == ["1 serving", "1 serving"]
        assert card["steps"][0]["timer"]["display"] == "15:00"
        assert card["steps"][1]["timer"]["has_timer"] is False
        assert card["all_steps_completed"] is False
        assert card["alternate_recipes"] == [{"name": "Fried Rice", "description": "Crispy."}]

    def test_nutrient_panel(self, analysis):
        panel = nutrient_panel(analysis)
        assert panel["calorie_meter"]["percent"] == 20.0
        assert panel["macronutrients"][0]["percent_daily_value"] == 24.0
        assert panel["micronutrients"][0]["amount"] == 1200.0
        assert panel["ingredients"][0]["macronutrients"][0]["name"] == "Carbs"
