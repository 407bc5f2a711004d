"""Builders for engine snapshots used across tests."""

from datetime import date, datetime, time

from platepick.schemas import (
    IngredientRef,
    IngredientUsage,
    MealHistoryEntry,
    RecipeSnapshot,
    ScoringContext,
)


def make_recipe(recipe_id, name=None, allergen_ids=(), ingredients=(), **kwargs):
    """`ingredients` is a list of (name, allergen_ids) pairs."""
    usages = [
        IngredientUsage(
            ingredient=IngredientRef(id=i + 1, name=ing_name, allergen_ids=list(ids)),
            quantity=1,
            unit="cup",
        )
        for i, (ing_name, ids) in enumerate(ingredients)
    ]
    return RecipeSnapshot(
        id=recipe_id,
        name=name or f"Recipe {recipe_id}",
        allergen_ids=list(allergen_ids),
        ingredients=usages,
        **kwargs,
    )


def make_context(meal_type="dinner", target_date=date(2026, 10, 14), hour=18,
                 is_weekend=False, is_rush_hour=False, user_id=1):
    return ScoringContext(
        user_id=user_id,
        meal_type=meal_type,
        target_date=target_date,
        current_time=time(hour, 0),
        is_weekend=is_weekend,
        is_rush_hour=is_rush_hour,
    )


def make_entry(recipe_id, meal_date, completed=True, cuisine_type=None, recipe_meal_type=None):
    return MealHistoryEntry(
        meal_date=meal_date,
        meal_type=recipe_meal_type or "dinner",
        recipe_id=recipe_id,
        completed=completed,
        cuisine_type=cuisine_type,
        recipe_meal_type=recipe_meal_type,
    )


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now
