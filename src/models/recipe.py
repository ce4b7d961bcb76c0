"""
Recipe Generation Schemas

Typed input and output shapes of the recipe generation flow.
Field names serialize in camelCase ("recipeName", "allergyWarning")
so the JSON contract matches what the browser client expects.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from .duration import normalize_timer_text, parse_duration


class FlowModel(BaseModel):
    """Base for all flow schemas: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class GenerateRecipeInput(FlowModel):
    """Request for a new recipe."""
    ingredients: str = Field(
        ..., description="A comma-separated list of ingredients available in the fridge."
    )
    allergies: Optional[str] = Field(
        None, description="A comma-separated list of allergies to avoid in the recipe."
    )
    strict_mode: Optional[bool] = Field(
        None,
        description="If true, the recipe may only use the provided ingredients.",
    )
    preferences: Optional[str] = Field(
        None, description="Nutrient preferences expressed by the user, if any."
    )

    @field_validator("ingredients")
    @classmethod
    def ingredients_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value or not value.strip(", "):
            raise ValueError("At least one ingredient is required")
        return value


class RecipeStep(FlowModel):
    """A single instruction step, optionally carrying a timer."""
    step: str = Field(..., description="A single step in the recipe instructions.")
    timer: Optional[str] = Field(
        None,
        description=(
            'The waiting time for this step in HH:MM:SS (e.g. "00:10:00"); '
            "omit for steps that need no timer."
        ),
    )

    @field_validator("timer", mode="before")
    @classmethod
    def normalize_timer(cls, value):
        return normalize_timer_text(value)

    @computed_field
    @property
    def duration_seconds(self) -> Optional[int]:
        """Canonical timer length in seconds, None when the step has no timer."""
        return parse_duration(self.timer)


class AlternateRecipe(FlowModel):
    name: str = Field(..., description="The name of the alternate recipe.")
    description: str = Field(..., description="A short description of the alternate recipe.")


class GenerateRecipeOutput(FlowModel):
    """A generated recipe plus alternates."""
    recipe_name: str = Field(..., description="The name of the generated recipe.")
    ingredients: List[str] = Field(
        ..., min_length=1, description="The ingredients required for the recipe."
    )
    instructions: List[RecipeStep] = Field(
        ...,
        min_length=1,
        description="The cooking instructions for the recipe, step by step, with optional timers.",
    )
    alternate_recipes: List[AlternateRecipe] = Field(
        default_factory=list,
        description="Alternative recipes that can be made with the given ingredients.",
    )
    allergy_warning: Optional[str] = Field(
        None, description="A warning if the generated recipe may contain allergens."
    )

    @field_validator("ingredients")
    @classmethod
    def drop_blank_ingredients(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("Recipe must list at least one ingredient")
        return cleaned

    @field_validator("allergy_warning", mode="before")
    @classmethod
    def blank_warning_is_none(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        if text.lower() in ("", "none", "null", "n/a"):
            return None
        return text

    @property
    def timed_steps(self) -> List[int]:
        """Indices of steps that carry a usable timer."""
        return [
            index for index, step in enumerate(self.instructions)
            if step.duration_seconds is not None
        ]
