"""
Chef Fuori-Sede - Data models.

Recipes are identified by title: two recipes are "the same" iff their
titles are equal. Duplicate titles inside one batch are not resolved.

All models are frozen. Derived copies are made with model_copy(update=...).
"""

from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DifficultyLevel = Literal["facile", "medio", "difficile", "other"]
CostTier = Literal["€", "€€", "€€€", "other"]

DIFFICULTY_LEVELS: tuple[str, ...] = ("facile", "medio", "difficile")
COST_TIERS: tuple[str, ...] = ("€", "€€", "€€€")

MIN_SERVINGS = 1
MAX_SERVINGS = 20
MIN_RECIPE_COUNT = 1
MAX_RECIPE_COUNT = 5


class MealPreference(str, Enum):
    """Kind of recipes the user wants."""

    FAST = "fast"
    ECONOMICAL = "economical"
    BALANCED = "balanced"


class DietaryTag:
    """Dietary options offered by the input form. Free-form tags are also accepted."""

    VEGETARIAN = "Vegetariano"
    VEGAN = "Vegano"
    GLUTEN_FREE = "Senza Glutine"
    LACTOSE_FREE = "Senza Lattosio"

    ALL = (VEGETARIAN, VEGAN, GLUTEN_FREE, LACTOSE_FREE)


class Ingredient(BaseModel):
    """
    One ingredient line.

    quantity is free-form ("200", "1.5", "un pizzico", "q.b.").
    """

    model_config = ConfigDict(frozen=True)

    name: str
    quantity: str = ""
    unit: str = ""

    @field_validator("quantity", "unit", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        # Backends sometimes emit bare numbers or null
        if value is None:
            return ""
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            # Plain notation, no exponent: 1500000.0 -> "1500000", 0.5 -> "0.5"
            return format(Decimal(repr(value)).normalize(), "f")
        return value

    def display(self) -> str:
        """Render as "quantity unit name" without stray spaces."""
        return " ".join(part for part in (self.quantity, self.unit, self.name) if part)


class ShoppingListItem(Ingredient):
    """An ingredient the recipe needs that is not among the available ones."""


class RecipeDraft(BaseModel):
    """Recipe as produced by the text model, before an image is attached."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Nome del piatto, unico nel gruppo di ricette")
    description: str = Field(description="Breve descrizione invitante")
    prep_time_minutes: int = Field(ge=0, description="Tempo di preparazione in minuti")
    difficulty: str = Field(description="facile, medio o difficile")
    cost_level: str = Field(description="€, €€ o €€€")
    ingredients: list[Ingredient]
    instructions: list[str] = Field(description="Passaggi in ordine")

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value


class Recipe(RecipeDraft):
    """
    A displayable recipe. image_url may be a data: URI or a remote URL.

    servings is the number of people the ingredient quantities are for.
    """

    image_url: str
    servings: int = Field(default=MIN_SERVINGS, ge=MIN_SERVINGS, le=MAX_SERVINGS)

    @property
    def difficulty_level(self) -> DifficultyLevel:
        level = self.difficulty.strip().lower()
        return level if level in DIFFICULTY_LEVELS else "other"

    @property
    def cost_tier(self) -> CostTier:
        tier = self.cost_level.strip()
        return tier if tier in COST_TIERS else "other"

    def same_as(self, other: "Recipe") -> bool:
        return self.title == other.title

    @classmethod
    def from_draft(cls, draft: RecipeDraft, image_url: str, servings: int = MIN_SERVINGS) -> "Recipe":
        return cls(**draft.model_dump(), image_url=image_url, servings=servings)


class RecipeBatch(BaseModel):
    """Structured-output envelope for batch generation."""

    recipes: list[RecipeDraft]


class ShoppingList(BaseModel):
    """Structured-output envelope for the missing-ingredients diff."""

    items: list[ShoppingListItem] = Field(default_factory=list)


class RecipeRequest(BaseModel):
    """
    Criteria for a recipe batch.

    Kept as the "last request" after a successful batch so that single
    recipes can be regenerated with the same criteria.
    """

    model_config = ConfigDict(frozen=True)

    ingredients: str = ""
    recipe_count: int = Field(default=MAX_RECIPE_COUNT, ge=MIN_RECIPE_COUNT, le=MAX_RECIPE_COUNT)
    meal_preference: MealPreference = MealPreference.FAST
    use_pantry: bool = True
    dietary_preferences: list[str] = Field(default_factory=list)
    servings: int = Field(default=MIN_SERVINGS, ge=MIN_SERVINGS, le=MAX_SERVINGS)
    excluded_ingredients: str = ""
