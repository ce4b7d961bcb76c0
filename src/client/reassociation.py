"""
Quantity Re-association

The recipe flow returns bare ingredient names; quantities live in the
user's form rows. This module pairs them back up for the nutrient flow.

Matching rules, per generated ingredient (in recipe order):
1. A quantity the user typed on the recipe card for that position
2. The first unconsumed form row with the same name (case-insensitive)
3. The first unconsumed form row whose name contains, or is contained
   in, the generated name ("chicken" <-> "chicken breast")
4. The default quantity

A row is consumed once matched, so two generated "egg" entries take
the quantities of two different "egg" rows instead of both taking the
first one.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from models.nutrition import NutrientIngredient
from .form_state import IngredientRow


DEFAULT_QUANTITY = "1 serving"


@dataclass
class QuantityMatch:
    """Where a generated ingredient's quantity came from."""
    position: int
    name: str
    quantity: str
    row_id: Optional[str] = None   # None when not taken from a form row
    source: str = "default"        # override | exact | partial | default

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "name": self.name,
            "quantity": self.quantity,
            "row_id": self.row_id,
            "source": self.source,
        }


def _normalize(name: str) -> str:
    return " ".join(name.lower().split())


def reassociate_quantities(
    recipe_ingredients: Sequence[str],
    rows: Sequence[IngredientRow],
    overrides: Optional[Dict[int, str]] = None,
    default_quantity: str = DEFAULT_QUANTITY,
) -> List[QuantityMatch]:
    """
    Resolve a quantity for every generated ingredient.

    Args:
        recipe_ingredients: Ingredient names from the generated recipe
        rows: The user's form rows
        overrides: Quantities typed on the recipe card, keyed by position
        default_quantity: Used when nothing else matches

    Returns:
        One QuantityMatch per generated ingredient, in recipe order
    """
    overrides = overrides or {}
    available = [row for row in rows if not row.is_blank and row.quantity_text]
    consumed = set()
    matches = []

    def take(predicate) -> Optional[IngredientRow]:
        for row in available:
            if row.row_id not in consumed and predicate(_normalize(row.name)):
                consumed.add(row.row_id)
                return row
        return None

    resolved: Dict[int, QuantityMatch] = {}
    for position, name in enumerate(recipe_ingredients):
        override = (overrides.get(position) or "").strip()
        if override:
            resolved[position] = QuantityMatch(position, name, override, source="override")

    # Exact names claim rows before any partial match can take them
    for source in ("exact", "partial"):
        for position, name in enumerate(recipe_ingredients):
            if position in resolved:
                continue
            target = _normalize(name)
            if source == "exact":
                row = take(lambda candidate: candidate == target)
            else:
                row = take(lambda candidate: candidate in target or target in candidate)
            if row is not None:
                resolved[position] = QuantityMatch(
                    position, name, row.quantity_text, row.row_id, source
                )

    for position, name in enumerate(recipe_ingredients):
        matches.append(
            resolved.get(position) or QuantityMatch(position, name, default_quantity)
        )

    return matches


def build_nutrient_ingredients(matches: Sequence[QuantityMatch]) -> List[NutrientIngredient]:
    return [NutrientIngredient(name=m.name, quantity=m.quantity) for m in matches]
