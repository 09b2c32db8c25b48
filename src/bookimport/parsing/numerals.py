"""Conversion of chapter labels (arabic, roman, spelled-out) to integers."""

from __future__ import annotations

import re

_ROMAN_RE = re.compile(r"^M{0,3}(CM|CD|D?C{0,3})(XC|XL|L?X{0,3})(IX|IV|V?I{0,3})$")
_ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}

_UNITS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}

_TENS: dict[str, int] = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

_TENS_ALT = "|".join(sorted(_TENS, key=len, reverse=True))
_DIGIT_WORDS_ALT = "|".join(sorted((word for word, value in _UNITS.items() if value < 10), key=len, reverse=True))
_UNITS_ALT = "|".join(sorted(_UNITS, key=len, reverse=True))

# Longer words first so "seventeen" wins over "seven".
SPELLED_NUMBER_PATTERN = rf"(?:(?:{_TENS_ALT})(?:[\s-]+(?:{_DIGIT_WORDS_ALT}))?|{_UNITS_ALT})"


def roman_to_int(label: str) -> int | None:
    """Return the value of a well-formed roman numeral, or None."""

    upper = label.strip().upper()
    if not upper or not _ROMAN_RE.match(upper):
        return None

    total = 0
    previous = 0
    for char in reversed(upper):
        value = _ROMAN_VALUES[char]
        if value < previous:
            total -= value
        else:
            total += value
            previous = value
    return total


def words_to_int(label: str) -> int | None:
    """Return the value of an English number word from one to ninety-nine."""

    parts = re.split(r"[\s-]+", label.strip().casefold())
    if len(parts) == 1:
        word = parts[0]
        return _UNITS.get(word) or _TENS.get(word)
    if len(parts) == 2 and parts[0] in _TENS:
        unit = _UNITS.get(parts[1])
        if unit is not None and unit < 10:
            return _TENS[parts[0]] + unit
    return None


def parse_chapter_label(label: str) -> int | None:
    """Convert ``12``, ``XII`` or ``twelve`` to 12; None when unrecognized."""

    cleaned = label.strip().rstrip(".")
    if not cleaned:
        return None
    if cleaned.isdigit():
        value = int(cleaned)
        return value if value > 0 else None
    spelled = words_to_int(cleaned)
    if spelled is not None:
        return spelled
    return roman_to_int(cleaned)
