"""
Chef Fuori-Sede - Prompt builders.

All prompts are in Italian; the response shape is enforced separately by
the structured-output schema, so prompts only describe the content.
"""

import json
from collections.abc import Iterable

from fuorisede.models import Ingredient, MealPreference

SYSTEM_PROMPT = (
    "Sei un'IA di cucina per studenti universitari fuori sede. "
    "Proponi ricette semplici, realistiche e in italiano."
)

FRIDGE_ANALYSIS_PROMPT = (
    "Analizza questa immagine del contenuto di un frigorifero. "
    "Elenca solo gli ingredienti commestibili che vedi, in italiano, separati da una virgola. "
    "Sii conciso. Esempio: pomodori, latte, uova, formaggio. "
    "Se non vedi ingredienti, rispondi con una stringa vuota."
)

PREFERENCE_INSTRUCTIONS: dict[MealPreference, str] = {
    MealPreference.FAST: "particolarmente veloci (massimo 20 minuti)",
    MealPreference.ECONOMICAL: "economiche e con pochi ingredienti",
    MealPreference.BALANCED: "bilanciate",
}


def preference_instruction(preference: MealPreference | str) -> str:
    try:
        return PREFERENCE_INSTRUCTIONS[MealPreference(preference)]
    except ValueError:
        return PREFERENCE_INSTRUCTIONS[MealPreference.BALANCED]


def dietary_instruction(tags: Iterable[str]) -> str:
    tags = [tag for tag in tags if tag.strip()]
    if not tags:
        return ""
    return f" Rispetta queste preferenze: {', '.join(tags)}."


def exclusion_instruction(exclusions: str) -> str:
    if not exclusions.strip():
        return ""
    return f" Non usare: {exclusions.strip()}."


def build_batch_prompt(
    ingredients: str,
    servings: int,
    count: int,
    preference: MealPreference | str,
    dietary_tags: Iterable[str],
    exclusions: str,
) -> str:
    return (
        f'Con questi ingredienti: "{ingredients}", genera {count} ricette '
        f"{preference_instruction(preference)} per {servings} persone."
        f"{dietary_instruction(dietary_tags)}{exclusion_instruction(exclusions)}"
        " Ogni ricetta deve avere un titolo diverso. "
        "Difficoltà: facile, medio o difficile. Costo: €, €€ o €€€. "
        "Le quantità degli ingredienti devono essere numeri semplici quando possibile."
    )


def build_regenerate_prompt(
    ingredients: str,
    servings: int,
    preference: MealPreference | str,
    dietary_tags: Iterable[str],
    exclusions: str,
    exclude_titles: Iterable[str],
) -> str:
    titles = '", "'.join(exclude_titles)
    return (
        f'Genera UNA sola ricetta {preference_instruction(preference)}, diversa da queste: "{titles}", '
        f'per {servings} persone, usando "{ingredients}".'
        f"{dietary_instruction(dietary_tags)}{exclusion_instruction(exclusions)}"
        " Il titolo non deve coincidere con nessuno di quelli elencati."
    )


def build_shopping_list_prompt(recipe_ingredients: Iterable[Ingredient], available: str) -> str:
    lines = [ingredient.display() for ingredient in recipe_ingredients]
    return (
        f'Dati gli ingredienti disponibili: "{available}", e la lista di ricetta: '
        f"{json.dumps(lines, ensure_ascii=False)}, restituisci solo gli ingredienti mancanti "
        "con nome, quantità e unità. Se non manca nulla restituisci una lista vuota."
    )


def build_image_prompt(recipe_title: str) -> str:
    return (
        f'Una foto realistica e appetitosa di questo piatto: "{recipe_title}". '
        "Stile still-life, illuminazione naturale, su un tavolo rustico."
    )
