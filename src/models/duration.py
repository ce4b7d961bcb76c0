"""
Step Duration Parsing

Converts the free-form timer strings a model attaches to recipe steps
into one canonical representation: whole seconds.

Accepted grammar:
- Clock form: "HH:MM:SS" or "MM:SS"  (e.g. "00:10:00", "5:30")
- Text form: one or more "<n>[-<m> | to <m>] <unit>" terms
  (e.g. "10-12 minutes", "1 hour 30 minutes", "1.5 hrs", "45 sec", "1h30m")
  A number is an integer, a decimal ("1.5"), a fraction ("1/2") or a
  mixed number ("1 1/2").
  Units: hours/hrs/hr/h, minutes/mins/min/m, seconds/secs/sec/s.
  Ranges take the lower bound.
  Text holding any number outside a term ("2 x 5 minutes") is rejected.
- A bare number ("5") is read as minutes.

Anything else, a zero duration or a zero denominator yields None (no timer).
"""

import re
from typing import Optional


NULL_TIMER_VALUES = {"", "null", "none", "n/a", "na", "-", "0"}

CLOCK_PATTERN = re.compile(r"^\s*(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2})\s*$")

# Mixed number first so "1 1/2" is not read as "1" followed by "1/2"
NUMBER = r"\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?"

TERM_PATTERN = re.compile(
    rf"(?<![\d/.])({NUMBER})"                   # value
    rf"(?:\s*(?:-|–|to)\s*(?:{NUMBER}))?"       # optional range upper bound
    r"\s*(hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)(?![a-z])",
    re.IGNORECASE,
)

BARE_NUMBER_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*$")

DIGIT_PATTERN = re.compile(r"\d")

UNIT_SECONDS = {
    "h": 3600,
    "m": 60,
    "s": 1,
}


def normalize_timer_text(value: Optional[str]) -> Optional[str]:
    """Strip a timer string, mapping null-like model output to None."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in NULL_TIMER_VALUES:
        return None
    return text


def _unit_seconds(unit: str) -> int:
    # "hours", "hrs", "h" -> h; "minutes", "mins" -> m; "secs" -> s
    return UNIT_SECONDS[unit[0].lower()]


def _number(text: str) -> Optional[float]:
    """'1.5' -> 1.5, '1/2' -> 0.5, '1 1/2' -> 1.5; None for a zero denominator."""
    total = 0.0
    for part in text.split():
        if "/" in part:
            numerator, denominator = part.split("/")
            if int(denominator) == 0:
                return None
            total += int(numerator) / int(denominator)
        else:
            total += float(part)
    return total


def parse_duration(value: Optional[str]) -> Optional[int]:
    """
    Parse a timer string into whole seconds.

    Args:
        value: Timer text from the model (may be None)

    Returns:
        Positive number of seconds, or None when the text is absent,
        unparsable or zero.
    """
    text = normalize_timer_text(value)
    if text is None:
        return None

    clock = CLOCK_PATTERN.match(text)
    if clock:
        hours, minutes, seconds = clock.groups()
        total = int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)
        return total or None

    bare = BARE_NUMBER_PATTERN.match(text)
    if bare:
        total = int(round(float(bare.group(1)) * 60))
        return total or None

    terms = TERM_PATTERN.findall(text)
    if not terms:
        return None
    if DIGIT_PATTERN.search(TERM_PATTERN.sub(" ", text)):
        return None

    total = 0.0
    for amount, unit in terms:
        number = _number(amount)
        if number is None:
            return None
        total += number * _unit_seconds(unit)

    seconds = int(round(total))
    return seconds or None
