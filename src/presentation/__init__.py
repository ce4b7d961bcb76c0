# Presentation Package - view models for recipe cards and nutrient charts
from .nutrient_display import (
    parse_amount,
    extract_unit,
    find_nutrient,
    find_nutrient_amount,
    build_nutrient_bar,
    build_nutrient_bars,
    calorie_meter,
    NutrientBar,
    MeterReading,
    DAILY_VALUES,
)
from .recipe_view import recipe_card, nutrient_panel, session_view

__all__ = [
    "parse_amount",
    "extract_unit",
    "find_nutrient",
    "find_nutrient_amount",
    "build_nutrient_bar",
    "build_nutrient_bars",
    "calorie_meter",
    "NutrientBar",
    "MeterReading",
    "DAILY_VALUES",
    "recipe_card",
    "nutrient_panel",
    "session_view",
]
