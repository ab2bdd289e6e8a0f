"""
Tests for the Generation Client.

The backend helpers (call_llm, call_llm_vision, call_image_model) are
patched; these tests cover what the client adds on top: count contract,
image fan-out with per-item fallback, duplicate-title rejection and error
normalization.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from fuorisede.errors import ErrorKind, GenerationError
from fuorisede.generation import GenerationClient, image_fallback_url
from fuorisede.models import Ingredient, RecipeBatch, RecipeDraft, ShoppingList, ShoppingListItem


def _draft(title: str) -> RecipeDraft:
    return RecipeDraft(
        title=title,
        description="Buonissima",
        prep_time_minutes=10,
        difficulty="facile",
        cost_level="€",
        ingredients=[Ingredient(name="pasta", quantity="100", unit="g")],
        instructions=["Cuoci", "Servi"],
    )


def _batch(*titles: str) -> RecipeBatch:
    return RecipeBatch(recipes=[_draft(title) for title in titles])


def _generate(client: GenerationClient, count: int):
    return client.generate_recipe_batch("pasta, uova", 2, count, "fast", [], "")


class TestImageFallbackUrl:

    def test_deterministic(self):
        assert image_fallback_url("Pasta al Forno") == image_fallback_url("Pasta al Forno")

    def test_quotes_title(self):
        url = image_fallback_url("Pasta  al   Forno")
        assert url == "https://source.unsplash.com/400x300/?Pasta%20al%20Forno,food"


class TestGenerateImage:

    def test_returns_data_uri(self):
        with patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_image.return_value = "AAAA"
            result = asyncio.run(GenerationClient().generate_image("Carbonara"))

        assert result == "data:image/png;base64,AAAA"
        assert "Carbonara" in mock_image.call_args.kwargs["prompt"]

    def test_backend_error_falls_back(self):
        with patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_image.side_effect = RuntimeError("429 quota")
            result = asyncio.run(GenerationClient().generate_image("Carbonara"))

        assert result == image_fallback_url("Carbonara")

    def test_missing_payload_falls_back(self):
        with patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_image.return_value = None
            result = asyncio.run(GenerationClient().generate_image("Carbonara"))

        assert result == image_fallback_url("Carbonara")


class TestGenerateRecipeBatch:

    def test_returns_exactly_count_with_images(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_llm.return_value = _batch("A", "B", "C")
            mock_image.return_value = "IMG"
            recipes = asyncio.run(_generate(GenerationClient(), 3))

        assert [r.title for r in recipes] == ["A", "B", "C"]
        assert all(r.image_url == "data:image/png;base64,IMG" for r in recipes)
        assert all(r.servings == 2 for r in recipes)
        assert mock_image.await_count == 3

    def test_extra_recipes_truncated(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_llm.return_value = _batch("A", "B", "C")
            mock_image.return_value = "IMG"
            recipes = asyncio.run(_generate(GenerationClient(), 2))

        assert [r.title for r in recipes] == ["A", "B"]
        assert mock_image.await_count == 2

    def test_too_few_recipes_is_malformed(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_llm.return_value = _batch("A")
            with pytest.raises(GenerationError) as info:
                asyncio.run(_generate(GenerationClient(), 3))

        assert info.value.kind is ErrorKind.MALFORMED_RESPONSE
        mock_image.assert_not_awaited()

    def test_one_image_failure_does_not_fail_batch(self):
        async def flaky_image(*, prompt, operation):
            if "B" in prompt:
                raise RuntimeError("image backend down")
            return "IMG"

        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", side_effect=flaky_image):
            mock_llm.return_value = _batch("A", "B", "C")
            recipes = asyncio.run(_generate(GenerationClient(), 3))

        assert recipes[0].image_url == "data:image/png;base64,IMG"
        assert recipes[1].image_url == image_fallback_url("B")
        assert recipes[2].image_url == "data:image/png;base64,IMG"

    def test_image_fan_out_is_concurrent_and_bounded(self):
        in_flight = 0
        peak = 0

        async def slow_image(*, prompt, operation):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return "IMG"

        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", side_effect=slow_image):
            mock_llm.return_value = _batch("A", "B", "C", "D", "E")
            asyncio.run(_generate(GenerationClient(image_concurrency=2), 5))

        assert peak == 2

    def test_order_preserved_when_images_finish_out_of_order(self):
        delays = {"A": 0.03, "B": 0.0, "C": 0.015}

        async def image(*, prompt, operation):
            title = next(t for t in delays if f'"{t}"' in prompt)
            await asyncio.sleep(delays[title])
            return title

        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", side_effect=image):
            mock_llm.return_value = _batch("A", "B", "C")
            recipes = asyncio.run(_generate(GenerationClient(), 3))

        assert [r.image_url for r in recipes] == [
            "data:image/png;base64,A",
            "data:image/png;base64,B",
            "data:image/png;base64,C",
        ]

    def test_backend_error_normalized(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm:
            mock_llm.side_effect = RuntimeError("RESOURCE_EXHAUSTED")
            with pytest.raises(GenerationError) as info:
                asyncio.run(_generate(GenerationClient(), 3))

        assert info.value.kind is ErrorKind.RATE_LIMITED
        assert isinstance(info.value.__cause__, RuntimeError)

    def test_prompt_carries_criteria(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_llm.return_value = _batch("A")
            mock_image.return_value = "IMG"
            asyncio.run(GenerationClient().generate_recipe_batch(
                "pasta, uova", 4, 1, "economical", ["Vegetariano"], "aglio"
            ))

        prompt = mock_llm.call_args.kwargs["prompt"]
        assert '"pasta, uova"' in prompt
        assert "per 4 persone" in prompt
        assert "economiche" in prompt
        assert "Vegetariano" in prompt
        assert "Non usare: aglio." in prompt
        assert mock_llm.call_args.kwargs["response_model"] is RecipeBatch


class TestRegenerateOne:

    def test_returns_recipe_with_image(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_llm.return_value = _draft("Risotto")
            mock_image.return_value = "IMG"
            recipe = asyncio.run(GenerationClient().regenerate_one(
                "riso", 2, "balanced", [], "", ["Carbonara", "Frittata"]
            ))

        assert recipe.title == "Risotto"
        assert recipe.image_url == "data:image/png;base64,IMG"
        assert recipe.servings == 2
        prompt = mock_llm.call_args.kwargs["prompt"]
        assert '"Carbonara", "Frittata"' in prompt

    def test_duplicate_title_rejected(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm, \
             patch("fuorisede.generation.call_image_model", new_callable=AsyncMock) as mock_image:
            mock_llm.return_value = _draft("  carbonara ")
            with pytest.raises(GenerationError) as info:
                asyncio.run(GenerationClient().regenerate_one(
                    "pasta", 2, "fast", [], "", ["Carbonara"]
                ))

        assert info.value.kind is ErrorKind.MALFORMED_RESPONSE
        mock_image.assert_not_awaited()


class TestDiffShoppingList:

    def test_returns_items(self):
        items = [ShoppingListItem(name="guanciale", quantity="50", unit="g")]
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm:
            mock_llm.return_value = ShoppingList(items=items)
            result = asyncio.run(GenerationClient().diff_shopping_list(
                [Ingredient(name="guanciale", quantity="50", unit="g")], "pasta, uova"
            ))

        assert result == items
        prompt = mock_llm.call_args.kwargs["prompt"]
        assert '"pasta, uova"' in prompt
        assert "50 g guanciale" in prompt

    def test_error_normalized(self):
        with patch("fuorisede.generation.call_llm", new_callable=AsyncMock) as mock_llm:
            mock_llm.side_effect = ConnectionError("reset")
            with pytest.raises(GenerationError) as info:
                asyncio.run(GenerationClient().diff_shopping_list([], "pasta"))

        assert info.value.kind is ErrorKind.UNKNOWN
        assert "lista della spesa" in info.value.message


class TestAnalyzeImage:

    def test_comma_separated_result(self):
        with patch("fuorisede.generation.call_llm_vision", new_callable=AsyncMock) as mock_vision:
            mock_vision.return_value = " pomodori, latte,\nuova. "
            result = asyncio.run(GenerationClient().analyze_image(b"\x89PNG", "image/png"))

        assert result == "pomodori, latte, uova"
        assert mock_vision.call_args.kwargs["mime_type"] == "image/png"

    @pytest.mark.parametrize("answer", [None, "", "   ", '""'])
    def test_nothing_recognized_is_empty_string(self, answer):
        with patch("fuorisede.generation.call_llm_vision", new_callable=AsyncMock) as mock_vision:
            mock_vision.return_value = answer
            result = asyncio.run(GenerationClient().analyze_image(b"img", "image/jpeg"))

        assert result == ""

    def test_rate_limit_raises(self):
        with patch("fuorisede.generation.call_llm_vision", new_callable=AsyncMock) as mock_vision:
            mock_vision.side_effect = RuntimeError("HTTP 429")
            with pytest.raises(GenerationError) as info:
                asyncio.run(GenerationClient().analyze_image(b"img", "image/jpeg"))

        assert info.value.kind is ErrorKind.RATE_LIMITED
