"""
Recipe View

JSON-ready projections of a session for the browser: the ingredient
form, the recipe card with its step checklist, and the nutrient panel.
Pure functions of session state.
"""

from typing import Any, Dict, List, Optional

from client.reassociation import QuantityMatch
from client.step_timer import TimerBoard
from models.nutrition import AnalyzeNutrientContentOutput, IngredientNutrientAnalysis
from models.recipe import GenerateRecipeOutput
from .nutrient_display import build_nutrient_bars, calorie_meter


def recipe_card(
    recipe: GenerateRecipeOutput,
    quantities: List[QuantityMatch],
    board: Optional[TimerBoard] = None,
) -> Dict[str, Any]:
    """Recipe name, quantified ingredients, step checklist, alternates."""
    timers = board.to_list() if board else []
    steps = []
    for index, step in enumerate(recipe.instructions):
        entry = {
            "index": index,
            "number": index + 1,
            "text": step.step,
            "timer_text": step.timer,
        }
        if index < len(timers):
            entry["timer"] = timers[index]
        steps.append(entry)

    return {
        "recipe_name": recipe.recipe_name,
        "ingredients": [match.to_dict() for match in quantities],
        "steps": steps,
        "all_steps_completed": board.all_completed if board else False,
        "alternate_recipes": [alt.model_dump() for alt in recipe.alternate_recipes],
        "allergy_warning": recipe.allergy_warning,
    }


def _ingredient_panel(analysis: IngredientNutrientAnalysis) -> Dict[str, Any]:
    return {
        "name": analysis.name,
        "macronutrients": [bar.to_dict() for bar in build_nutrient_bars(analysis.macronutrients)],
        "micronutrients": [bar.to_dict() for bar in build_nutrient_bars(analysis.micronutrients)],
    }


def nutrient_panel(
    analysis: AnalyzeNutrientContentOutput, calorie_target: float = 2000
) -> Dict[str, Any]:
    """Whole-recipe bars and calorie meter plus per-ingredient breakdowns."""
    recipe_analysis = analysis.recipe_analysis
    return {
        "recipe_name": recipe_analysis.recipe_name,
        "total_calories": recipe_analysis.total_calories,
        "calorie_meter": calorie_meter(recipe_analysis.total_calories, calorie_target).to_dict(),
        "macronutrients": [bar.to_dict() for bar in build_nutrient_bars(recipe_analysis.macronutrients)],
        "micronutrients": [bar.to_dict() for bar in build_nutrient_bars(recipe_analysis.micronutrients)],
        "healthiness_assessment": recipe_analysis.healthiness_assessment,
        "ingredients": [_ingredient_panel(item) for item in analysis.ingredient_analyses],
    }


def session_view(session) -> Dict[str, Any]:
    """Everything the client needs to render one session."""
    with session.lock:
        view: Dict[str, Any] = {
            "session_id": session.session_id,
            "form": session.form.to_dict(),
            "recipe": None,
            "analysis": None,
            "busy": session.busy,
        }
        if session.recipe is not None:
            view["recipe"] = recipe_card(session.recipe, session.quantity_matches(), session.timers)
        if session.analysis is not None:
            view["analysis"] = nutrient_panel(session.analysis, session.calorie_target)
    return view
