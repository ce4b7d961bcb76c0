"""
Ingredient Form State

Editable ingredient rows plus allergy text and the strict-mode flag.

Every edit returns a new RecipeForm; nothing is mutated in place.
Rows are addressed by position for edits, but each row also carries a
stable row_id assigned at creation so generated ingredients can be
matched back to the row they came from.
"""

import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

from models.recipe import GenerateRecipeInput


PREFERENCE_MIN = 0
PREFERENCE_MAX = 100


class FormValidationError(ValueError):
    """Raised for form edits or submissions that cannot be accepted."""


def new_row_id() -> str:
    return uuid.uuid4().hex[:12]


def normalize_quantity(value: Union[str, int, float, None]) -> str:
    """Quantities arrive as text or numbers: 200 -> '200', 1.5 -> '1.5', 2.0 -> '2'."""
    if value is None:
        return ""
    if isinstance(value, bool):
        raise FormValidationError("Quantity must be text or a number")
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            raise FormValidationError(f"Invalid quantity: {value}")
        return f"{value:g}"
    return str(value).strip()


@dataclass(frozen=True)
class IngredientRow:
    """One editable ingredient line."""
    row_id: str = field(default_factory=new_row_id)
    name: str = ""
    quantity: str = ""
    unit: str = ""
    # Nutrient preference sliders, e.g. {"protein": 80}
    preferences: Dict[str, int] = field(default_factory=dict)

    @property
    def is_blank(self) -> bool:
        return not self.name.strip()

    @property
    def quantity_text(self) -> str:
        """'200' + 'g' -> '200 g'; empty when no quantity was given."""
        quantity = str(self.quantity).strip()
        if not quantity:
            return ""
        unit = self.unit.strip()
        return f"{quantity} {unit}" if unit else quantity

    def to_request_item(self) -> str:
        name = self.name.strip()
        quantity = self.quantity_text
        return f"{quantity} {name}" if quantity else name

    def to_dict(self) -> dict:
        return {
            "row_id": self.row_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "preferences": dict(self.preferences),
        }


@dataclass(frozen=True)
class RecipeForm:
    """
    The whole ingredient form.

    Usage:
        form = RecipeForm.new()
        form = form.update_row(0, name="chicken", quantity="200", unit="g")
        form = form.add_row().update_row(1, name="broccoli")
        request = form.to_recipe_request()
    """
    rows: Tuple[IngredientRow, ...] = ()
    allergies: str = ""
    strict_mode: bool = False

    @classmethod
    def new(cls) -> "RecipeForm":
        """A fresh form starts with one blank row."""
        return cls(rows=(IngredientRow(),))

    # ------------------------------------------------------------------
    # Row edits
    # ------------------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.rows):
            raise FormValidationError(
                f"No ingredient row at position {index} (form has {len(self.rows)} rows)"
            )

    def add_row(self, name: str = "", quantity: str = "", unit: str = "") -> "RecipeForm":
        row = IngredientRow(name=name, quantity=quantity, unit=unit)
        return replace(self, rows=self.rows + (row,))

    def remove_row(self, index: int) -> "RecipeForm":
        self._check_index(index)
        return replace(self, rows=self.rows[:index] + self.rows[index + 1:])

    def update_row(
        self,
        index: int,
        name: Optional[str] = None,
        quantity: Optional[str] = None,
        unit: Optional[str] = None,
    ) -> "RecipeForm":
        self._check_index(index)
        changes = {
            key: value for key, value in
            (("name", name), ("quantity", quantity), ("unit", unit))
            if value is not None
        }
        if not changes:
            return self

        rows = list(self.rows)
        rows[index] = replace(rows[index], **changes)
        return replace(self, rows=tuple(rows))

    def set_preference(self, index: int, nutrient: str, value: float) -> "RecipeForm":
        """Move a nutrient slider on one row; values are clamped to 0-100."""
        self._check_index(index)
        nutrient = nutrient.strip().lower()
        if not nutrient:
            raise FormValidationError("Nutrient name is required")

        clamped = int(round(min(max(value, PREFERENCE_MIN), PREFERENCE_MAX)))
        rows = list(self.rows)
        preferences = dict(rows[index].preferences)
        preferences[nutrient] = clamped
        rows[index] = replace(rows[index], preferences=preferences)
        return replace(self, rows=tuple(rows))

    def with_allergies(self, allergies: str) -> "RecipeForm":
        return replace(self, allergies=allergies or "")

    def with_strict_mode(self, strict_mode: bool) -> "RecipeForm":
        return replace(self, strict_mode=bool(strict_mode))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @property
    def filled_rows(self) -> List[IngredientRow]:
        return [row for row in self.rows if not row.is_blank]

    def serialize_ingredients(self) -> str:
        """Join named rows into the comma-separated string the flow takes."""
        return ", ".join(row.to_request_item() for row in self.filled_rows)

    def serialize_preferences(self) -> Optional[str]:
        parts = []
        for row in self.filled_rows:
            for nutrient, value in sorted(row.preferences.items()):
                parts.append(f"{row.name.strip()}: {nutrient} {value}/100")
        return "; ".join(parts) or None

    def to_recipe_request(self) -> GenerateRecipeInput:
        """
        Build the generation request.

        Raises:
            FormValidationError: if no row has an ingredient name
        """
        if not self.filled_rows:
            raise FormValidationError("Please enter at least one ingredient.")

        allergies = self.allergies.strip()
        return GenerateRecipeInput(
            ingredients=self.serialize_ingredients(),
            allergies=allergies or None,
            strict_mode=self.strict_mode,
            preferences=self.serialize_preferences(),
        )

    def to_dict(self) -> dict:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "allergies": self.allergies,
            "strict_mode": self.strict_mode,
        }
