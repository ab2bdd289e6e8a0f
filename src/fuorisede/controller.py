"""
Chef Fuori-Sede - Recipe session controller.

Owns all session state and is the only thing that changes it. The
presentation layer reads immutable SessionState snapshots (via `state` or
`subscribe`) and calls the operations below.

Concurrency model:
- One event loop; state changes happen between awaits, never during.
- Single-flight per kind of operation: batch generation, shopping list,
  image regeneration, recipe regeneration, fridge analysis. A request of a
  kind already in flight is dropped (the operation returns False), never
  queued. The guards are global, not per recipe.
- Nothing is cancelled: an in-flight call finishes and its result is applied
  only if it still matches the current state.
- Failures are never retried. They clear the loading flag, set a message and
  leave the previous content in place.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Literal

from fuorisede.errors import MALFORMED_MESSAGE, GenerationError, InputValidationError
from fuorisede.favorites import FavoritesStore, PreferencesStore
from fuorisede.generation import GenerationClient
from fuorisede.ingredients import combine_ingredients, has_usable_ingredients, merge_detected
from fuorisede.models import MAX_SERVINGS, MIN_SERVINGS, Recipe, RecipeRequest, ShoppingListItem
from fuorisede.quantities import rescale
from fuorisede.sharing import format_recipe_for_sharing
from fuorisede.storage import KeyValueStore

logger = logging.getLogger(__name__)

View = Literal["input", "recipes", "details", "favorites"]

NO_INGREDIENTS_MESSAGE = "Inserisci almeno un ingrediente o attiva la dispensa."
NO_INGREDIENTS_IN_PHOTO_MESSAGE = (
    "Nessun ingrediente riconosciuto nell'immagine. Prova con una foto più chiara."
)


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of everything the presentation layer renders."""

    view: View = "input"
    recipes: tuple[Recipe, ...] = ()
    selected: Recipe | None = None
    shopping_list: tuple[ShoppingListItem, ...] = ()
    favorites: tuple[Recipe, ...] = ()
    servings: int = MIN_SERVINGS

    fresh_ingredients: str = ""
    combined_ingredients: str = ""
    pantry: str = ""
    exclusions: str = ""
    last_request: RecipeRequest | None = None

    # In-flight markers (also the single-flight guards)
    is_loading: bool = False
    is_loading_shopping_list: bool = False
    is_analyzing_image: bool = False
    regenerating_image_title: str | None = None
    regenerating_recipe_index: int | None = None

    error: str | None = None
    image_error: str | None = None

    def is_favorite(self, recipe: Recipe) -> bool:
        return any(fav.title == recipe.title for fav in self.favorites)


Listener = Callable[[SessionState], None]


class RecipeSessionController:
    """
    Orchestrates generation calls and keeps derived state consistent.

    Args:
        client: Generation backend client
        store: Durable key-value store for pantry, exclusions and favorites
    """

    def __init__(self, client: GenerationClient, store: KeyValueStore):
        self._client = client
        self._favorites = FavoritesStore(store)
        self._preferences = PreferencesStore(store)
        self._listeners: list[Listener] = []
        self._state = SessionState(
            favorites=self._favorites.items,
            pantry=self._preferences.pantry,
            exclusions=self._preferences.exclusions,
        )

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with every new snapshot. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_favorite(self, recipe: Recipe) -> bool:
        return self._state.is_favorite(recipe)

    def _update(self, **changes) -> SessionState:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Session listener failed")
        return self._state

    # ------------------------------------------------------------------
    # Recipe batch
    # ------------------------------------------------------------------

    async def request_batch(self, request: RecipeRequest) -> bool:
        """
        Generate a new batch of recipes.

        Raises:
            InputValidationError: nothing to cook with (no backend call is made)

        Returns:
            True if a new batch was loaded, False if dropped or failed
        """
        state = self._state
        if state.is_loading:
            logger.info("Batch generation already in flight, request dropped")
            return False

        if not has_usable_ingredients(request.ingredients, state.pantry, request.use_pantry):
            raise InputValidationError(NO_INGREDIENTS_MESSAGE)

        if not request.excluded_ingredients.strip() and state.exclusions:
            request = request.model_copy(update={"excluded_ingredients": state.exclusions})

        combined = combine_ingredients(request.ingredients, state.pantry, request.use_pantry)
        self._update(
            is_loading=True,
            error=None,
            fresh_ingredients=request.ingredients.strip(),
            combined_ingredients=combined,
            servings=request.servings,
        )

        try:
            recipes = await self._client.generate_recipe_batch(
                combined,
                request.servings,
                request.recipe_count,
                request.meal_preference,
                request.dietary_preferences,
                request.excluded_ingredients,
            )
        except GenerationError as e:
            self._update(
                is_loading=False,
                recipes=(),
                selected=None,
                shopping_list=(),
                error=e.message,
                view="input",
            )
            return False
        except BaseException:
            self._update(is_loading=False)
            raise

        self._update(
            is_loading=False,
            recipes=tuple(recipes),
            last_request=request,
            selected=None,
            shopping_list=(),
            view="recipes",
        )
        return True

    # ------------------------------------------------------------------
    # Detail view
    # ------------------------------------------------------------------

    async def select_recipe(self, recipe: Recipe) -> bool:
        """
        Open a recipe and compute its shopping list.

        The serving count follows the recipe, so a favorite saved after
        rescaling reopens at the servings its quantities are for.
        Returns False if a shopping list is already being computed (the
        selection is not changed) or if the diff failed.
        """
        if self._state.is_loading_shopping_list:
            logger.info("Shopping list already in flight, selection dropped")
            return False

        self._update(
            selected=recipe,
            view="details",
            servings=recipe.servings,
            shopping_list=(),
            error=None,
            is_loading_shopping_list=True,
        )

        try:
            items = await self._client.diff_shopping_list(
                recipe.ingredients, self._state.combined_ingredients
            )
        except GenerationError as e:
            still_open = self._is_selected(recipe.title)
            self._update(
                is_loading_shopping_list=False,
                error=e.message if still_open else self._state.error,
            )
            return False
        except BaseException:
            self._update(is_loading_shopping_list=False)
            raise

        if not self._is_selected(recipe.title):
            logger.debug(f"Discarding shopping list for {recipe.title!r}: no longer selected")
            self._update(is_loading_shopping_list=False)
            return False

        self._update(is_loading_shopping_list=False, shopping_list=tuple(items))
        return True

    def _is_selected(self, title: str) -> bool:
        selected = self._state.selected
        return selected is not None and selected.title == title

    def change_servings(self, servings: int) -> SessionState:
        """Rescale the open recipe's ingredients to a new number of servings."""
        servings = max(MIN_SERVINGS, min(MAX_SERVINGS, servings))
        state = self._state
        if state.selected is None:
            return self._update(servings=servings)

        ingredients = rescale(state.selected.ingredients, state.selected.servings, servings)
        return self._update(
            servings=servings,
            selected=state.selected.model_copy(update={"ingredients": ingredients, "servings": servings}),
        )

    def share_text(self) -> str:
        """Shareable text for the open recipe and its shopping list."""
        if self._state.selected is None:
            raise InputValidationError("Nessuna ricetta selezionata.")
        return format_recipe_for_sharing(self._state.selected, self._state.shopping_list)

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    def toggle_favorite(self, recipe: Recipe) -> bool:
        """Returns True if the recipe is a favorite afterwards."""
        now_favorite = self._favorites.toggle(recipe)
        self._update(favorites=self._favorites.items)
        return now_favorite

    # ------------------------------------------------------------------
    # Regeneration
    # ------------------------------------------------------------------

    async def regenerate_image(self, title: str) -> bool:
        """
        Replace the picture of the recipe with this title, wherever it appears.

        Dropped while any image regeneration is in flight.
        """
        if self._state.regenerating_image_title is not None:
            logger.info(f"Image regeneration in flight, request for {title!r} dropped")
            return False

        self._update(regenerating_image_title=title, error=None)

        try:
            image_url = await self._client.generate_image(title)
        except GenerationError as e:
            self._update(regenerating_image_title=None, error=e.message)
            return False
        except BaseException:
            self._update(regenerating_image_title=None)
            raise

        state = self._state
        recipes = tuple(
            recipe.model_copy(update={"image_url": image_url}) if recipe.title == title else recipe
            for recipe in state.recipes
        )
        selected = state.selected
        if selected is not None and selected.title == title:
            selected = selected.model_copy(update={"image_url": image_url})
        self._favorites.update_image(title, image_url)

        self._update(
            recipes=recipes,
            selected=selected,
            favorites=self._favorites.items,
            regenerating_image_title=None,
        )
        return True

    async def regenerate_recipe(self, index: int) -> bool:
        """
        Swap the recipe at index for a new one with a different title.

        A favorited recipe that gets swapped is replaced in favorites by its
        successor. Dropped while another swap is in flight or before any
        batch has been generated.
        """
        state = self._state
        if state.regenerating_recipe_index is not None or state.last_request is None:
            return False
        if not 0 <= index < len(state.recipes):
            raise InputValidationError(f"Nessuna ricetta in posizione {index}.")

        request = state.last_request
        old_title = state.recipes[index].title
        batch_titles = [recipe.title for recipe in state.recipes]
        self._update(regenerating_recipe_index=index, error=None)

        try:
            new_recipe = await self._client.regenerate_one(
                state.combined_ingredients,
                request.servings,
                request.meal_preference,
                request.dietary_preferences,
                request.excluded_ingredients,
                batch_titles,
            )
        except GenerationError as e:
            self._update(regenerating_recipe_index=None, error=e.message)
            return False
        except BaseException:
            self._update(regenerating_recipe_index=None)
            raise

        # The batch may have been replaced while we were waiting
        current = self._state.recipes
        if index >= len(current) or current[index].title != old_title:
            logger.info(f"Batch changed during regeneration of {old_title!r}, result discarded")
            self._update(regenerating_recipe_index=None)
            return False

        others = {recipe.title for i, recipe in enumerate(current) if i != index}
        if new_recipe.title in others or new_recipe.title == old_title:
            logger.warning(f"Regenerated recipe {new_recipe.title!r} duplicates the batch")
            self._update(regenerating_recipe_index=None, error=MALFORMED_MESSAGE)
            return False

        recipes = current[:index] + (new_recipe,) + current[index + 1:]
        self._favorites.replace(old_title, new_recipe)

        self._update(
            recipes=recipes,
            favorites=self._favorites.items,
            regenerating_recipe_index=None,
        )
        return True

    # ------------------------------------------------------------------
    # Input form
    # ------------------------------------------------------------------

    def set_fresh_ingredients(self, text: str) -> SessionState:
        return self._update(fresh_ingredients=text)

    async def analyze_fridge_photo(self, image_bytes: bytes, mime_type: str) -> str:
        """
        Add the ingredients recognized in a fridge photo to the typed ones.

        Returns the recognized ingredients ("" if none, failed or dropped).
        """
        if self._state.is_analyzing_image:
            return ""

        self._update(is_analyzing_image=True, image_error=None)

        try:
            detected = await self._client.analyze_image(image_bytes, mime_type)
        except GenerationError as e:
            self._update(is_analyzing_image=False, image_error=e.message)
            return ""
        except BaseException:
            self._update(is_analyzing_image=False)
            raise

        if not detected:
            self._update(is_analyzing_image=False, image_error=NO_INGREDIENTS_IN_PHOTO_MESSAGE)
            return ""

        self._update(
            is_analyzing_image=False,
            fresh_ingredients=merge_detected(self._state.fresh_ingredients, detected),
        )
        return detected

    def save_pantry(self, text: str) -> SessionState:
        return self._update(pantry=self._preferences.save_pantry(text))

    def save_exclusions(self, text: str) -> SessionState:
        return self._update(exclusions=self._preferences.save_exclusions(text))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def back(self) -> SessionState:
        """
        Leave the current view.

        From the detail view, back to the batch if there is one. Anywhere
        else, back to the input form, which discards the batch.
        """
        state = self._state
        if state.view == "details" and state.recipes:
            return self._update(view="recipes", selected=None, shopping_list=(), error=None)

        return self._update(
            view="input",
            selected=None,
            shopping_list=(),
            error=None,
            recipes=(),
            last_request=None,
        )

    def show_input(self) -> SessionState:
        """Edit ingredients, keeping the current batch reachable."""
        return self._update(view="input", selected=None, shopping_list=(), error=None)

    def show_recipes(self) -> SessionState:
        if not self._state.recipes:
            return self._state
        return self._update(view="recipes", selected=None, shopping_list=(), error=None)

    def show_favorites(self) -> SessionState:
        return self._update(view="favorites", selected=None, shopping_list=(), error=None)
