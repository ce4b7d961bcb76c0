"""
Nutrient Display

Turns the model's free-form nutrient amounts into numbers for bar and
meter rendering.

Nothing in this module raises on bad model output: an amount that
cannot be read is 0, a nutrient that is missing is 0.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from models.nutrition import NutrientInfo


NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")
THOUSANDS_PATTERN = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")
UNIT_PATTERN = re.compile(
    r"(micrograms?|milligrams?|grams?|kilocalories|calories|mcg|µg|ug|mg|kcal|cal|g|iu)\b",
    re.IGNORECASE,
)

# Spelled-out and alternate unit names -> the short form used for conversion
UNIT_ALIASES = {
    "gram": "g",
    "grams": "g",
    "milligram": "mg",
    "milligrams": "mg",
    "microgram": "mcg",
    "micrograms": "mcg",
    "µg": "mcg",
    "ug": "mcg",
    "kilocalories": "kcal",
    "calories": "kcal",
    "cal": "kcal",
}

# Daily reference values (2000 kcal diet)
DAILY_VALUES: Dict[str, Tuple[float, str]] = {
    "calories": (2000, "kcal"),
    "protein": (50, "g"),
    "carbohydrates": (250, "g"),
    "fat": (65, "g"),
    "saturated fat": (20, "g"),
    "fiber": (25, "g"),
    "sugar": (50, "g"),
    "sodium": (2300, "mg"),
    "potassium": (3500, "mg"),
    "cholesterol": (300, "mg"),
    "calcium": (1300, "mg"),
    "iron": (18, "mg"),
    "magnesium": (420, "mg"),
    "zinc": (11, "mg"),
    "vitamin a": (900, "mcg"),
    "vitamin c": (90, "mg"),
    "vitamin d": (20, "mcg"),
    "vitamin e": (15, "mg"),
    "vitamin k": (120, "mcg"),
    "vitamin b12": (2.4, "mcg"),
    "folate": (400, "mcg"),
}

ALIASES = {
    "carbs": "carbohydrates",
    "carbohydrate": "carbohydrates",
    "total carbohydrates": "carbohydrates",
    "total carbohydrate": "carbohydrates",
    "total fat": "fat",
    "fats": "fat",
    "dietary fiber": "fiber",
    "fibre": "fiber",
    "sugars": "sugar",
    "total sugars": "sugar",
    "proteins": "protein",
    "salt": "sodium",
    "energy": "calories",
    "vitamin b-12": "vitamin b12",
    "folic acid": "folate",
}

# Multipliers to milligrams
UNIT_TO_MG = {
    "g": 1000.0,
    "mg": 1.0,
    "mcg": 0.001,
    "µg": 0.001,
    "ug": 0.001,
}


def parse_amount(value) -> float:
    """
    Read a non-negative number out of a nutrient amount.

    "12" -> 12.0, "12g" -> 12.0, "12.5 mg" -> 12.5, "1,200 mg" -> 1200.0,
    "~5 g" -> 5.0, "5-7 g" -> 5.0, "trace" -> 0.0, None -> 0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) and number > 0 else 0.0

    text = THOUSANDS_PATTERN.sub("", str(value)).replace(",", ".")
    match = NUMBER_PATTERN.search(text)
    if not match:
        return 0.0
    return float(match.group(0))


def extract_unit(amount, unit: Optional[str] = None) -> str:
    """The nutrient's unit: the explicit field if given, else any unit embedded in the amount."""
    if unit and unit.strip():
        found = unit.strip().lower()
    else:
        match = UNIT_PATTERN.search(str(amount or ""))
        found = match.group(1).lower() if match else ""
    return UNIT_ALIASES.get(found, found)


def canonical_name(name: str) -> str:
    key = " ".join(str(name or "").lower().replace("_", " ").split())
    key = re.sub(r"\s*\(.*?\)$", "", key)
    return ALIASES.get(key, key)


def find_nutrient(nutrients: Iterable[NutrientInfo], name: str) -> Optional[NutrientInfo]:
    target = canonical_name(name)
    for nutrient in nutrients or []:
        if canonical_name(nutrient.name) == target:
            return nutrient
    return None


def find_nutrient_amount(nutrients: Iterable[NutrientInfo], name: str) -> float:
    """Numeric amount of a named nutrient; 0.0 when absent or unreadable."""
    nutrient = find_nutrient(nutrients, name)
    if nutrient is None:
        return 0.0
    return parse_amount(nutrient.amount)


def convert_amount(amount: float, from_unit: str, to_unit: str) -> Optional[float]:
    """Convert between g/mg/mcg; None when the units are not comparable."""
    if from_unit == to_unit:
        return amount
    if from_unit in UNIT_TO_MG and to_unit in UNIT_TO_MG:
        return amount * UNIT_TO_MG[from_unit] / UNIT_TO_MG[to_unit]
    return None


@dataclass
class NutrientBar:
    """One horizontal bar in the nutrient breakdown."""
    name: str
    amount: float
    unit: str
    daily_value: Optional[float] = None
    daily_value_unit: Optional[str] = None
    percent_daily_value: Optional[float] = None

    @property
    def width_percent(self) -> float:
        """Bar fill, capped at 100."""
        if self.percent_daily_value is None:
            return 0.0
        return min(100.0, self.percent_daily_value)

    @property
    def label(self) -> str:
        amount = f"{self.amount:g}{self.unit}" if self.unit in ("g", "mg", "mcg") \
            else f"{self.amount:g} {self.unit}".strip()
        if self.percent_daily_value is None:
            return f"{self.name}: {amount}"
        return f"{self.name}: {amount} ({self.percent_daily_value:.0f}% DV)"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit,
            "daily_value": self.daily_value,
            "daily_value_unit": self.daily_value_unit,
            "percent_daily_value": self.percent_daily_value,
            "width_percent": self.width_percent,
            "label": self.label,
        }


def build_nutrient_bar(nutrient: NutrientInfo) -> NutrientBar:
    amount = parse_amount(nutrient.amount)
    unit = extract_unit(nutrient.amount, nutrient.unit)
    bar = NutrientBar(name=nutrient.name, amount=amount, unit=unit)

    reference = DAILY_VALUES.get(canonical_name(nutrient.name))
    if reference is None:
        return bar

    daily_value, daily_unit = reference
    converted = convert_amount(amount, unit or daily_unit, daily_unit)
    if converted is None:
        return bar

    bar.daily_value = daily_value
    bar.daily_value_unit = daily_unit
    bar.percent_daily_value = round(converted / daily_value * 100, 1)
    return bar


def build_nutrient_bars(nutrients: Iterable[NutrientInfo]) -> List[NutrientBar]:
    return [build_nutrient_bar(n) for n in nutrients or []]


@dataclass
class MeterReading:
    """Calorie meter: value against a daily target."""
    value: float
    maximum: float
    percent: float
    level: str   # low | moderate | high

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "max": self.maximum,
            "percent": self.percent,
            "level": self.level,
        }


def calorie_meter(total_calories, target: float = 2000) -> MeterReading:
    """
    Meter for a recipe's calories against the daily target.

    Levels: under a quarter of the target is low, over half is high.
    """
    value = parse_amount(total_calories)
    target = target if target and target > 0 else 2000
    percent = round(value / target * 100, 1)
    if percent < 25:
        level = "low"
    elif percent <= 50:
        level = "moderate"
    else:
        level = "high"
    return MeterReading(value=value, maximum=float(target), percent=min(percent, 100.0), level=level)
