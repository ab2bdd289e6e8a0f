"""Plain-text export of a recipe and its shopping list, for copy or share."""

from collections.abc import Sequence

from fuorisede.models import Recipe, ShoppingListItem


def format_recipe_for_sharing(recipe: Recipe, shopping_list: Sequence[ShoppingListItem]) -> str:
    lines = [f"🍳 Ricetta: {recipe.title}", "", "📜 Ingredienti:"]
    lines += [f"- {item.display()}" for item in recipe.ingredients]

    lines += ["", "📋 Istruzioni:"]
    lines += [f"{number}. {step}" for number, step in enumerate(recipe.instructions, start=1)]

    lines.append("")
    if shopping_list:
        lines.append("🛒 Lista della spesa (ingredienti mancanti):")
        for item in shopping_list:
            amount = " ".join(part for part in (item.quantity, item.unit) if part)
            lines.append(f"- {item.name} ({amount})" if amount else f"- {item.name}")
    else:
        lines.append("🎉 Hai già tutti gli ingredienti!")

    return "\n".join(lines) + "\n"
