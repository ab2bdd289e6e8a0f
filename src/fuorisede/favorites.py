"""
Chef Fuori-Sede - Favorites and preferences.

Favorites are keyed by recipe title and persisted as a JSON list of recipes.
Pantry and exclusions are plain text, each saved under its own key.
"""

import json
import logging

from pydantic import ValidationError

from fuorisede.models import Recipe
from fuorisede.storage import EXCLUSIONS_KEY, FAVORITES_KEY, PANTRY_KEY, KeyValueStore

logger = logging.getLogger(__name__)


def _load_favorites(raw: str | None) -> tuple[Recipe, ...]:
    """Parse stored favorites. Anything unreadable counts as no favorites."""
    if not raw:
        return ()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored favorites are not valid JSON, starting empty")
        return ()
    if not isinstance(data, list):
        logger.warning("Stored favorites are not a list, starting empty")
        return ()

    favorites: list[Recipe] = []
    titles: set[str] = set()
    for entry in data:
        try:
            recipe = Recipe.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Skipping invalid stored favorite: {e.error_count()} errors")
            continue
        if recipe.title not in titles:
            titles.add(recipe.title)
            favorites.append(recipe)
    return tuple(favorites)


class FavoritesStore:
    """
    Favorite recipes, unique by title.

    Every mutation replaces the internal tuple and is written through to the
    store before returning.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store
        self._items: tuple[Recipe, ...] = _load_favorites(store.get(FAVORITES_KEY))

    @property
    def items(self) -> tuple[Recipe, ...]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def is_favorite(self, recipe: Recipe) -> bool:
        return any(fav.title == recipe.title for fav in self._items)

    def toggle(self, recipe: Recipe) -> bool:
        """
        Add the recipe, or remove the favorite with the same title.

        Returns:
            True if the recipe is a favorite after the call
        """
        if self.is_favorite(recipe):
            self._set(tuple(fav for fav in self._items if fav.title != recipe.title))
            return False
        self._set(self._items + (recipe,))
        return True

    def replace(self, old_title: str, recipe: Recipe) -> bool:
        """
        Swap the favorite titled old_title for recipe.

        If the new title was already a favorite, the old entry is just dropped
        so titles stay unique. Returns False if old_title was not a favorite.
        """
        if not any(fav.title == old_title for fav in self._items):
            return False
        remaining = tuple(
            fav for fav in self._items if fav.title not in (old_title, recipe.title)
        )
        self._set(remaining + (recipe,))
        return True

    def update_image(self, title: str, image_url: str) -> bool:
        """Point the favorite with this title at a new image. False if none matched."""
        if not any(fav.title == title for fav in self._items):
            return False
        self._set(tuple(
            fav.model_copy(update={"image_url": image_url}) if fav.title == title else fav
            for fav in self._items
        ))
        return True

    def clear(self) -> None:
        self._set(())

    def _set(self, items: tuple[Recipe, ...]) -> None:
        self._items = items
        payload = json.dumps([fav.model_dump(mode="json") for fav in items], ensure_ascii=False)
        self._store.set(FAVORITES_KEY, payload)


class PreferencesStore:
    """Pantry staples and always-excluded ingredients, as free text."""

    def __init__(self, store: KeyValueStore):
        self._store = store
        self._pantry = (store.get(PANTRY_KEY) or "").strip()
        self._exclusions = (store.get(EXCLUSIONS_KEY) or "").strip()

    @property
    def pantry(self) -> str:
        return self._pantry

    @property
    def exclusions(self) -> str:
        return self._exclusions

    def save_pantry(self, text: str) -> str:
        self._pantry = text.strip()
        self._store.set(PANTRY_KEY, self._pantry)
        return self._pantry

    def save_exclusions(self, text: str) -> str:
        self._exclusions = text.strip()
        self._store.set(EXCLUSIONS_KEY, self._exclusions)
        return self._exclusions
