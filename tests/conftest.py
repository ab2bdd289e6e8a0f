"""
Pytest configuration and fixtures for Chef Fuori-Sede tests.
"""

import os

# Set test environment before importing fuorisede modules
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")
os.environ["FUORISEDE_ENV"] = "development"
os.environ["FUORISEDE_LOG_PROMPTS"] = "0"

from unittest.mock import AsyncMock

import pytest

from fuorisede.generation import GenerationClient
from fuorisede.models import Ingredient, Recipe, ShoppingListItem
from fuorisede.storage import MemoryStore


def make_recipe(title: str, image_url: str | None = None, **overrides) -> Recipe:
    """Build a valid recipe; only the title usually matters."""
    data = {
        "title": title,
        "description": f"{title} come la fa la nonna",
        "prep_time_minutes": 15,
        "difficulty": "facile",
        "cost_level": "€",
        "ingredients": [
            Ingredient(name="pasta", quantity="100", unit="g"),
            Ingredient(name="uova", quantity="1", unit=""),
            Ingredient(name="sale", quantity="q.b.", unit=""),
        ],
        "instructions": ["Cuoci la pasta", "Aggiungi le uova", "Servi"],
        "image_url": image_url or f"https://img.example/{title.replace(' ', '-')}.png",
        "servings": 2,
    }
    data.update(overrides)
    return Recipe(**data)


@pytest.fixture
def sample_recipes() -> list[Recipe]:
    return [
        make_recipe("Pasta alla Carbonara"),
        make_recipe("Frittata di Pasta"),
        make_recipe("Pasta Aglio e Olio"),
    ]


@pytest.fixture
def sample_shopping_list() -> list[ShoppingListItem]:
    return [
        ShoppingListItem(name="guanciale", quantity="50", unit="g"),
        ShoppingListItem(name="pecorino", quantity="30", unit="g"),
    ]


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def mock_client(sample_recipes, sample_shopping_list) -> AsyncMock:
    """GenerationClient double with sensible default results."""
    client = AsyncMock(spec=GenerationClient)
    client.generate_recipe_batch.return_value = list(sample_recipes)
    client.regenerate_one.return_value = make_recipe("Spaghetti al Pomodoro")
    client.diff_shopping_list.return_value = list(sample_shopping_list)
    client.generate_image.return_value = "data:image/png;base64,NEW"
    client.analyze_image.return_value = "latte, uova"
    return client


@pytest.fixture
def recipe_factory():
    """Factory for extra recipes inside a test."""
    return make_recipe
