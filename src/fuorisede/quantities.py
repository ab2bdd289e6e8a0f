"""
Chef Fuori-Sede - Serving-size scaling.

Only plain decimal quantities ("2", "1.5") are scaled; anything descriptive
("q.b.", "un pizzico", "1/2") is left exactly as written.

Results are rounded to two decimals, so scaling up and back down may not
restore the original string. Applying the same target twice is a no-op.
"""

import re
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from fuorisede.models import Ingredient

_PLAIN_DECIMAL = re.compile(r"[0-9]+(\.[0-9]+)?")
_CENT = Decimal("0.01")


def _render(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    rounded = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return str(int(rounded))
    # "1.50" -> "1.5"
    return format(rounded.normalize(), "f")


def scale_quantity(quantity: str, old_servings: int, new_servings: int) -> str:
    """Scale one quantity string; non-numeric input comes back unchanged."""
    if old_servings <= 0 or not _PLAIN_DECIMAL.fullmatch(quantity):
        return quantity
    scaled = Decimal(quantity) * Decimal(new_servings) / Decimal(old_servings)
    return _render(scaled)


def rescale(
    ingredients: Iterable[Ingredient],
    old_servings: int,
    new_servings: int,
) -> list[Ingredient]:
    """
    Recompute ingredient quantities for a new number of servings.

    Returns new Ingredient objects; the input is never modified.
    """
    result = []
    for ingredient in ingredients:
        quantity = scale_quantity(ingredient.quantity, old_servings, new_servings)
        if quantity != ingredient.quantity:
            ingredient = ingredient.model_copy(update={"quantity": quantity})
        result.append(ingredient)
    return result
