"""
Chef Fuori-Sede - Ingredient text handling.

The generation input is the "combined ingredients": what the user typed
first, then pantry staples that are not already listed.
"""

import re

_SEPARATORS = re.compile(r"[,;\n]+")


def split_ingredients(text: str | None) -> list[str]:
    """Split free text on commas, semicolons and newlines, dropping blanks."""
    if not text:
        return []
    return [item.strip() for item in _SEPARATORS.split(text) if item.strip()]


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    unique = []
    for item in items:
        key = " ".join(item.split()).casefold()
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


def combine_ingredients(fresh: str, pantry: str, use_pantry: bool) -> str:
    """
    Merge typed and pantry ingredients into one comma-separated string.

    Example:
        combine_ingredients("pasta, uova", "sale, olio", True)
        -> "pasta, uova, sale, olio"
    """
    items = split_ingredients(fresh)
    if use_pantry:
        items += split_ingredients(pantry)
    return ", ".join(_dedupe(items))


def has_usable_ingredients(fresh: str, pantry: str, use_pantry: bool) -> bool:
    """True when there is something to cook with (the submit guard)."""
    if fresh.strip():
        return True
    return use_pantry and bool(pantry.strip())


def merge_detected(current: str, detected: str) -> str:
    """Append ingredients recognized in a fridge photo to the typed ones."""
    current = current.strip()
    detected = detected.strip()
    if not detected:
        return current
    if not current:
        return detected
    return f"{current}, {detected}"
