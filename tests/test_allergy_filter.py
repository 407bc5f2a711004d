import itertools
import logging
import random

import pytest

from platepick.models import Allergen, Ingredient, Recipe, RecipeIngredient
from platepick.schemas import IngredientRef, IngredientUsage, RecipeSnapshot
from platepick.services.allergy_filter import (
    direct_allergen_ids,
    filter_safe,
    ingredient_allergen_ids,
    is_safe,
)
from helpers import make_recipe

PEANUT = 7
SHELLFISH = 3
DAIRY = 11


def test_direct_tag_rejects():
    recipe = make_recipe(1, allergen_ids=[PEANUT])
    assert is_safe(recipe, {PEANUT}) is False


def test_ingredient_tag_rejects():
    recipe = make_recipe(1, ingredients=[("noodles", []), ("peanut sauce", [PEANUT])])
    assert is_safe(recipe, {PEANUT}) is False
    assert ingredient_allergen_ids(recipe) == {"peanut sauce": {PEANUT}}


def test_unrelated_allergens_pass():
    recipe = make_recipe(1, allergen_ids=[DAIRY], ingredients=[("shrimp", [SHELLFISH])])
    assert is_safe(recipe, {PEANUT}) is True


def test_empty_allergy_set_always_passes():
    recipe = make_recipe(1, allergen_ids=[PEANUT], ingredients=[("peanut sauce", [PEANUT])])
    assert is_safe(recipe, set()) is True
    assert is_safe(recipe, None) is True
    assert filter_safe([recipe], []) == [recipe]


def test_missing_data_contributes_nothing():
    no_ingredients = RecipeSnapshot(id=1, name="Plain rice")
    usage_without_ingredient = RecipeSnapshot(
        id=2, name="Mystery", ingredients=[IngredientUsage(ingredient=None, quantity=1)]
    )
    untagged = RecipeSnapshot(
        id=3, name="Salad", ingredients=[IngredientUsage(ingredient=IngredientRef(id=5, name="lettuce"))]
    )
    for recipe in (no_ingredients, usage_without_ingredient, untagged):
        assert is_safe(recipe, {PEANUT}) is True


class MockAllergen:
    def __init__(self, id):
        self.id = id


class MockIngredient:
    def __init__(self, name, allergens):
        self.id = None
        self.name = name
        self.allergen_ids = allergens


class MockUsage:
    def __init__(self, ingredient):
        self.ingredient = ingredient


class MockRecipe:
    def __init__(self, id, allergen_ids=None, ingredients=None):
        self.id = id
        self.allergen_ids = allergen_ids
        self.ingredients = ingredients


def test_allergen_objects_are_matched_by_id():
    recipe = MockRecipe(1, ingredients=[MockUsage(MockIngredient("satay", [MockAllergen(PEANUT)]))])
    assert is_safe(recipe, {PEANUT}) is False
    assert direct_allergen_ids(recipe) == set()


def test_malformed_entries_are_skipped():
    recipe = MockRecipe(
        1,
        allergen_ids=[None, [1, 2]],  # unhashable id is ignored
        ingredients=[None, MockUsage(None), MockUsage(MockIngredient(None, None))],
    )
    assert is_safe(recipe, {PEANUT}) is True

    non_iterable = MockRecipe(2, allergen_ids=42, ingredients=42)
    assert is_safe(non_iterable, {PEANUT}) is True


class ExplodingRecipe:
    id = 99

    @property
    def allergen_ids(self):
        raise RuntimeError("lazy load failed")


def test_filter_safe_rejects_uninspectable_recipe_and_keeps_order():
    a = make_recipe(1)
    b = make_recipe(2, ingredients=[("peanut sauce", [PEANUT])])
    c = make_recipe(3)
    result = filter_safe([a, ExplodingRecipe(), None, b, c], {PEANUT})
    assert [r.id for r in result] == [1, 3]


def test_filter_safe_over_synthetic_graphs():
    """Any avoided id on a direct tag or any ingredient makes the recipe unsafe."""
    rng = random.Random(1234)
    universe = list(range(1, 13))

    for n in range(300):
        ingredients = [
            (f"ing-{n}-{i}", rng.sample(universe, rng.randint(0, 3)))
            for i in range(rng.randint(0, 5))
        ]
        direct = rng.sample(universe, rng.randint(0, 2))
        recipe = make_recipe(n + 1, allergen_ids=direct, ingredients=ingredients)
        avoid = set(rng.sample(universe, rng.randint(1, 4)))

        reachable = set(direct) | set(itertools.chain.from_iterable(ids for _, ids in ingredients))
        expected_safe = not (reachable & avoid)

        assert is_safe(recipe, avoid) is expected_safe
        assert (filter_safe([recipe], avoid) == [recipe]) is expected_safe


def test_shared_ingredient_taints_every_recipe_using_it():
    # The same tagged ingredient reached from several recipes
    pesto = ("pesto", [PEANUT, DAIRY])
    recipes = [
        make_recipe(1, ingredients=[("pasta", []), pesto]),
        make_recipe(2, ingredients=[pesto]),
        make_recipe(3, ingredients=[("pasta", [])]),
    ]
    assert [r.id for r in filter_safe(recipes, {DAIRY})] == [3]


@pytest.mark.parametrize("avoid", [{PEANUT}, {PEANUT, SHELLFISH}, [PEANUT], (PEANUT,)])
def test_allergy_set_accepts_any_iterable(avoid):
    recipe = make_recipe(1, ingredients=[("peanut sauce", [PEANUT])])
    assert is_safe(recipe, avoid) is False


def test_rejection_log_names_ingredient_and_allergen(caplog):
    caplog.set_level(logging.INFO, logger="platepick.safety")
    recipe = make_recipe(5, ingredients=[("noodles", []), ("peanut sauce", [PEANUT])])

    assert is_safe(recipe, {PEANUT}) is False

    records = [r for r in caplog.records if r.name == "platepick.safety" and r.levelno == logging.INFO]
    assert len(records) == 1
    message = records[0].getMessage()
    assert "Recipe 5" in message
    assert "'peanut sauce'" in message
    assert "[7]" in message


def test_rejection_log_for_direct_tag(caplog):
    caplog.set_level(logging.INFO, logger="platepick.safety")

    assert is_safe(make_recipe(6, allergen_ids=[PEANUT, DAIRY]), {PEANUT}) is False

    messages = [r.getMessage() for r in caplog.records if r.name == "platepick.safety"]
    assert any("direct tag" in m and "[7]" in m for m in messages)


def test_orm_recipe_tags_are_read_from_relationships():
    peanut = Allergen(id=PEANUT, name="Peanut")
    tagged = Recipe(id=1, name="Satay noodles", allergens=[peanut])
    via_ingredient = Recipe(id=2, name="Satay noodles")
    via_ingredient.ingredients = [
        RecipeIngredient(ingredient=Ingredient(id=1, name="peanut sauce", allergens=[peanut]), quantity=3),
    ]
    plain = Recipe(id=3, name="Rice")

    assert is_safe(tagged, {PEANUT}) is False
    assert is_safe(via_ingredient, {PEANUT}) is False
    assert ingredient_allergen_ids(via_ingredient) == {"peanut sauce": {PEANUT}}
    assert [r.id for r in filter_safe([tagged, via_ingredient, plain], {PEANUT})] == [3]
