"""Read-only repositories the engine consumes.

The protocols are what the engine depends on. The SQL implementations read
through SQLAlchemy and convert rows into immutable snapshots; none of them
write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Protocol, Sequence

from sqlalchemy import select, or_, func
from sqlalchemy.orm import Session

from .models import MealPlan, MealPlanEntry, Recipe, UserAllergy
from .schemas import (
    IngredientRef,
    IngredientUsage,
    MealHistoryEntry,
    MealType,
    NutritionFacts,
    RecipeSnapshot,
    normalize_meal_type,
)
from .infra.redis_cache import get_or_set_json_sync

logger = logging.getLogger("platepick.repositories")


@dataclass(frozen=True)
class CandidateFilters:
    cuisine_types: Sequence[str] = field(default_factory=tuple)
    max_cook_time: Optional[int] = None
    limit: Optional[int] = None


class RecipeRepository(Protocol):
    def get_candidate_recipes(self, meal_type: str, filters: CandidateFilters) -> list[RecipeSnapshot]: ...

    def get_recipes_by_ids(self, recipe_ids: Sequence[int]) -> list[RecipeSnapshot]: ...


class AllergyRepository(Protocol):
    def get_user_allergen_ids(self, user_id: int) -> list[int]: ...


class MealHistoryRepository(Protocol):
    def get_meal_history(self, user_id: int, since: date) -> list[MealHistoryEntry]: ...


# --- Row -> snapshot ---

def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def recipe_to_snapshot(recipe: Recipe) -> RecipeSnapshot:
    usages = []
    for ri in recipe.ingredients or []:
        ingredient = None
        if ri.ingredient is not None:
            ingredient = IngredientRef(
                id=ri.ingredient.id,
                name=ri.ingredient.name,
                allergen_ids=[a.id for a in ri.ingredient.allergens or []],
            )
        usages.append(IngredientUsage(ingredient=ingredient, quantity=_float(ri.quantity), unit=ri.unit))

    nutrition = None
    if recipe.nutritions:
        n = recipe.nutritions[0]
        nutrition = NutritionFacts(
            calories=_float(n.calories),
            protein_g=_float(n.protein_g),
            carbs_g=_float(n.carbs_g),
            fat_g=_float(n.fat_g),
        )

    return RecipeSnapshot(
        id=recipe.id,
        name=recipe.name,
        cuisine_type=recipe.cuisine_type,
        meal_type=recipe.meal_type,
        prep_time_minutes=recipe.prep_time_minutes,
        cook_time_minutes=recipe.cook_time_minutes,
        servings=recipe.servings,
        rating_average=_float(recipe.rating_average),
        likes_count=recipe.likes_count,
        is_custom=recipe.is_custom,
        ingredients=usages,
        allergen_ids=[a.id for a in recipe.allergens or []],
        nutrition=nutrition,
    )


# meal type -> base pool size
_POOL_SIZES = {
    MealType.BREAKFAST.value: 20,
    MealType.LUNCH.value: 30,
    MealType.DINNER.value: 40,
    MealType.SNACK.value: 15,
}
MAX_POOL_SIZE = 100


def recommended_pool_size(meal_type: str, filters: CandidateFilters) -> int:
    size = _POOL_SIZES.get(normalize_meal_type(meal_type), 25)
    if len(filters.cuisine_types) > 2:
        size += 10
    if filters.max_cook_time is not None and filters.max_cook_time < 30:
        size += 10
    return min(size, MAX_POOL_SIZE)


def _order_by(meal_type: str):
    total_time = func.coalesce(Recipe.prep_time_minutes, 0) + func.coalesce(Recipe.cook_time_minutes, 0)
    rating_desc = func.coalesce(Recipe.rating_average, 0).desc()
    meal = normalize_meal_type(meal_type)
    if meal in (MealType.BREAKFAST.value, MealType.SNACK.value):
        return [func.coalesce(Recipe.prep_time_minutes, 999), rating_desc, Recipe.name]
    if meal == MealType.LUNCH.value:
        return [total_time, rating_desc, Recipe.name]
    if meal == MealType.DINNER.value:
        return [rating_desc, func.coalesce(Recipe.cook_time_minutes, 999), Recipe.name]
    return [rating_desc, Recipe.name]


class SqlRecipeRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_candidate_recipes(self, meal_type: str, filters: Optional[CandidateFilters] = None) -> list[RecipeSnapshot]:
        """Coarse candidate pool. Allergy safety is NOT applied here."""
        filters = filters or CandidateFilters()
        stmt = select(Recipe)

        meal = normalize_meal_type(meal_type)
        if meal:
            pattern = f"%{meal}%"
            stmt = stmt.where(or_(Recipe.meal_type.ilike(pattern), Recipe.name.ilike(pattern)))
        if filters.cuisine_types:
            stmt = stmt.where(Recipe.cuisine_type.in_(list(filters.cuisine_types)))
        if filters.max_cook_time is not None:
            stmt = stmt.where(
                or_(Recipe.cook_time_minutes.is_(None), Recipe.cook_time_minutes <= filters.max_cook_time)
            )

        limit = filters.limit or recommended_pool_size(meal, filters)
        stmt = stmt.order_by(*_order_by(meal)).limit(limit)

        recipes = self.db.scalars(stmt).all()
        return [recipe_to_snapshot(r) for r in recipes]

    def get_recipes_by_ids(self, recipe_ids: Sequence[int]) -> list[RecipeSnapshot]:
        if not recipe_ids:
            return []
        rows = self.db.scalars(select(Recipe).where(Recipe.id.in_(list(recipe_ids)))).all()
        by_id = {r.id: r for r in rows}
        # Keep the caller's order
        return [recipe_to_snapshot(by_id[rid]) for rid in recipe_ids if rid in by_id]


class SqlAllergyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_user_allergen_ids(self, user_id: int) -> list[int]:
        rows = self.db.scalars(
            select(UserAllergy.allergen_id).where(
                UserAllergy.user_id == user_id,
                UserAllergy.allergen_id.is_not(None),
            )
        ).all()
        return sorted(set(rows))


class CachedAllergyRepository:
    """Caches a user's allergen ids in Redis for `ttl_sec` seconds."""

    def __init__(self, inner: AllergyRepository, ttl_sec: int):
        self.inner = inner
        self.ttl_sec = ttl_sec

    @staticmethod
    def cache_key(user_id: int) -> str:
        return f"platepick:user:{user_id}:allergens"

    def get_user_allergen_ids(self, user_id: int) -> list[int]:
        if self.ttl_sec <= 0:
            return self.inner.get_user_allergen_ids(user_id)
        ids, hit = get_or_set_json_sync(
            self.cache_key(user_id),
            self.ttl_sec,
            lambda: self.inner.get_user_allergen_ids(user_id),
        )
        logger.debug(f"Allergen ids for user {user_id} (cache {'hit' if hit else 'miss'}): {ids}")
        return [int(i) for i in ids]


class SqlMealHistoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_meal_history(self, user_id: int, since: date) -> list[MealHistoryEntry]:
        stmt = (
            select(MealPlanEntry, Recipe.cuisine_type, Recipe.meal_type)
            .join(MealPlan, MealPlanEntry.meal_plan_id == MealPlan.id)
            .outerjoin(Recipe, MealPlanEntry.recipe_id == Recipe.id)
            .where(
                MealPlan.user_id == user_id,
                MealPlanEntry.recipe_id.is_not(None),
                MealPlanEntry.meal_date >= since,
            )
            .order_by(MealPlanEntry.meal_date)
        )
        return [
            MealHistoryEntry(
                meal_date=entry.meal_date,
                meal_type=entry.meal_type,
                recipe_id=entry.recipe_id,
                completed=bool(entry.is_completed),
                cuisine_type=cuisine_type,
                recipe_meal_type=recipe_meal_type,
            )
            for entry, cuisine_type, recipe_meal_type in self.db.execute(stmt).all()
        ]
