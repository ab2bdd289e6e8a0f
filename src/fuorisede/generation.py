"""
Chef Fuori-Sede - Generation Client.

Typed wrapper around the generative backend. Five operations:

- analyze_image: fridge photo -> "pomodori, latte, uova"
- generate_recipe_batch: N recipes, each with an image
- regenerate_one: one replacement recipe with a title not already in use
- diff_shopping_list: recipe ingredients missing from what is available
- generate_image: dish picture as a data: URI

Every operation except generate_image raises GenerationError on failure.
generate_image never raises: any failure degrades to a deterministic
image-search URL derived from the title.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from urllib.parse import quote

from fuorisede import prompts
from fuorisede.config import settings
from fuorisede.errors import MalformedResponse, normalize_error
from fuorisede.llm.client import call_image_model, call_llm, call_llm_vision
from fuorisede.models import (
    Ingredient,
    MealPreference,
    Recipe,
    RecipeBatch,
    RecipeDraft,
    ShoppingList,
    ShoppingListItem,
)

logger = logging.getLogger(__name__)

FALLBACK_IMAGE_BASE = "https://source.unsplash.com/400x300/"


def image_fallback_url(recipe_title: str) -> str:
    """Image-search URL for a title. Same title, same URL."""
    query = quote(" ".join(recipe_title.split()))
    return f"{FALLBACK_IMAGE_BASE}?{query},food"


def _title_key(title: str) -> str:
    return " ".join(title.split()).casefold()


def _clean_ingredient_list(text: str | None) -> str:
    """Normalize the vision model's answer to "a, b, c" (or "")."""
    if not text:
        return ""
    text = text.strip().strip(".").strip()
    if not text or text in ('""', "''"):
        return ""
    items = [item.strip() for item in text.replace("\n", ",").split(",")]
    return ", ".join(item for item in items if item)


class GenerationClient:
    """
    Client for the generative backend.

    Args:
        image_concurrency: Max image requests in flight during batch
            generation. Defaults to settings.image_concurrency.
    """

    def __init__(self, image_concurrency: int | None = None):
        self._image_concurrency = image_concurrency

    @property
    def image_concurrency(self) -> int:
        if self._image_concurrency is None:
            return settings.image_concurrency
        return self._image_concurrency

    # ------------------------------------------------------------------
    # Fridge photo
    # ------------------------------------------------------------------

    async def analyze_image(self, image_bytes: bytes, mime_type: str) -> str:
        """
        List the edible ingredients visible in a fridge photo.

        Returns:
            Comma-separated ingredient names, or "" if none were recognized
        """
        context = "l'analisi dell'immagine del frigo"
        try:
            text = await call_llm_vision(
                prompt=prompts.FRIDGE_ANALYSIS_PROMPT,
                image_bytes=image_bytes,
                mime_type=mime_type,
                operation="analyze",
            )
        except Exception as e:
            raise normalize_error(e, context) from e

        return _clean_ingredient_list(text)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def generate_image(self, recipe_title: str) -> str:
        """Picture of the dish as a data: URI, or the fallback URL on any failure."""
        try:
            payload = await call_image_model(
                prompt=prompts.build_image_prompt(recipe_title),
                operation="image",
            )
            if not payload:
                raise MalformedResponse("Nessuna immagine generata dall'IA.")
            return f"data:image/png;base64,{payload}"
        except Exception as e:
            logger.warning(f"Image generation failed for {recipe_title!r}, using fallback: {e}")
            return image_fallback_url(recipe_title)

    async def _attach_images(self, drafts: Sequence[RecipeDraft], servings: int) -> list[Recipe]:
        """Fetch images concurrently (bounded) and join. Order is preserved."""
        semaphore = asyncio.Semaphore(self.image_concurrency)

        async def attach(draft: RecipeDraft) -> Recipe:
            async with semaphore:
                image_url = await self.generate_image(draft.title)
            return Recipe.from_draft(draft, image_url, servings)

        return list(await asyncio.gather(*(attach(draft) for draft in drafts)))

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    async def generate_recipe_batch(
        self,
        ingredients: str,
        servings: int,
        count: int,
        preference: MealPreference | str,
        dietary_tags: Iterable[str],
        exclusions: str,
    ) -> list[Recipe]:
        """
        Generate exactly `count` recipes for the given ingredients.

        Text first, then one image per recipe in parallel. An image failure
        never fails the batch.
        """
        context = "la generazione delle ricette"
        prompt = prompts.build_batch_prompt(
            ingredients, servings, count, preference, list(dietary_tags), exclusions
        )

        try:
            batch = await call_llm(
                response_model=RecipeBatch,
                prompt=prompt,
                system_prompt=prompts.SYSTEM_PROMPT,
                operation="recipes",
            )
            drafts = batch.recipes
            if len(drafts) < count:
                raise MalformedResponse(f"expected {count} recipes, got {len(drafts)}")
            if len(drafts) > count:
                logger.info(f"Backend returned {len(drafts)} recipes, keeping first {count}")
                drafts = drafts[:count]
        except Exception as e:
            raise normalize_error(e, context) from e

        recipes = await self._attach_images(drafts, servings)
        logger.info(f"Generated {len(recipes)} recipes")
        return recipes

    async def regenerate_one(
        self,
        ingredients: str,
        servings: int,
        preference: MealPreference | str,
        dietary_tags: Iterable[str],
        exclusions: str,
        exclude_titles: Iterable[str],
    ) -> Recipe:
        """Generate one recipe whose title is not in exclude_titles."""
        context = "la rigenerazione della ricetta"
        exclude_titles = list(exclude_titles)
        prompt = prompts.build_regenerate_prompt(
            ingredients, servings, preference, list(dietary_tags), exclusions, exclude_titles
        )

        try:
            draft = await call_llm(
                response_model=RecipeDraft,
                prompt=prompt,
                system_prompt=prompts.SYSTEM_PROMPT,
                operation="regenerate",
            )
            taken = {_title_key(title) for title in exclude_titles}
            if _title_key(draft.title) in taken:
                raise MalformedResponse(f"regenerated recipe reuses title {draft.title!r}")
        except Exception as e:
            raise normalize_error(e, context) from e

        image_url = await self.generate_image(draft.title)
        return Recipe.from_draft(draft, image_url, servings)

    # ------------------------------------------------------------------
    # Shopping list
    # ------------------------------------------------------------------

    async def diff_shopping_list(
        self,
        recipe_ingredients: Sequence[Ingredient],
        available_ingredients: str,
    ) -> list[ShoppingListItem]:
        """
        Ingredients of the recipe that are not covered by what is available.

        Item order is whatever the backend returns and may differ between calls.
        """
        context = "la creazione della lista della spesa"
        try:
            result = await call_llm(
                response_model=ShoppingList,
                prompt=prompts.build_shopping_list_prompt(recipe_ingredients, available_ingredients),
                operation="shopping",
            )
        except Exception as e:
            raise normalize_error(e, context) from e

        return list(result.items)
