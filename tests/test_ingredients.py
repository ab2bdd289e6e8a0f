"""Tests for combining typed and pantry ingredients."""

from fuorisede.ingredients import (
    combine_ingredients,
    has_usable_ingredients,
    merge_detected,
    split_ingredients,
)


class TestSplitIngredients:

    def test_commas_and_newlines(self):
        assert split_ingredients("pasta, uova\nsale;olio") == ["pasta", "uova", "sale", "olio"]

    def test_multi_word_items_kept_whole(self):
        assert split_ingredients("olio d'oliva, pane raffermo") == ["olio d'oliva", "pane raffermo"]

    def test_blank_items_dropped(self):
        assert split_ingredients(" , pasta,, ,") == ["pasta"]

    def test_none_or_empty(self):
        assert split_ingredients(None) == []
        assert split_ingredients("") == []


class TestCombineIngredients:

    def test_fresh_then_pantry(self):
        assert combine_ingredients("pasta, uova", "sale, olio", True) == "pasta, uova, sale, olio"

    def test_pantry_duplicates_removed(self):
        assert combine_ingredients("pasta, uova, sale", "Sale, olio, pasta", True) == "pasta, uova, sale, olio"

    def test_pantry_ignored_when_disabled(self):
        assert combine_ingredients("pasta, uova", "sale, olio", False) == "pasta, uova"

    def test_pantry_only(self):
        assert combine_ingredients("", "sale, olio", True) == "sale, olio"

    def test_normalizes_fresh_list(self):
        assert combine_ingredients("  pasta ,uova  ", "", True) == "pasta, uova"


class TestHasUsableIngredients:

    def test_typed_ingredients(self):
        assert has_usable_ingredients("pasta", "", False)

    def test_pantry_counts_only_when_used(self):
        assert has_usable_ingredients("", "sale", True)
        assert not has_usable_ingredients("", "sale", False)

    def test_blank_everything(self):
        assert not has_usable_ingredients("   ", "  ", True)


class TestMergeDetected:

    def test_appends_to_typed(self):
        assert merge_detected("pasta", "latte, uova") == "pasta, latte, uova"

    def test_empty_typed(self):
        assert merge_detected("  ", "latte") == "latte"

    def test_nothing_detected(self):
        assert merge_detected("pasta ", "") == "pasta"
