import logging
import random
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..repositories import CandidateFilters, RecipeRepository
from ..schemas import MealType, PlanProposal, normalize_meal_type
from ..services.degradation import SCORING_FALLBACK
from ..services.recommender import NoSafeRecipeError, Recommender

logger = logging.getLogger("platepick.planner")

DEFAULT_MEAL_TYPES = [MealType.BREAKFAST.value, MealType.LUNCH.value, MealType.DINNER.value]
MAX_PLAN_DAYS = 31


def servings_for(meal_type: str) -> int:
    # Dinner is cooked for leftovers
    return 2 if normalize_meal_type(meal_type) == MealType.DINNER.value else 1


def select_recipe_by_pattern(
    recipe_ids: Sequence[int],
    pattern: str,
    day: date,
    rng: Optional[random.Random] = None,
) -> Optional[int]:
    """Pick from a ranked shortlist.

    best/same -> first, rotate -> by day ordinal, random -> uniform.
    """
    if not recipe_ids:
        return None
    pattern = (pattern or "best").lower()
    if pattern == "rotate":
        # Day number counted from 0001-01-01 as day 0
        return recipe_ids[(day.toordinal() - 1) % len(recipe_ids)]
    if pattern == "random":
        return (rng or random).choice(list(recipe_ids))
    return recipe_ids[0]


def generate_plan_proposals(
    recommender: Recommender,
    recipe_repo: RecipeRepository,
    user_id: int,
    start_date: date,
    end_date: date,
    meal_types: Optional[list[str]] = None,
    fill_pattern: str = "random",
    shortlist_size: int = 5,
    filters: Optional[CandidateFilters] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> dict:
    """Propose a recipe for every (day, meal type) slot in [start_date, end_date].

    Slots are filled one at a time through the recommender. The candidate pool
    is fetched once per meal type. Nothing is persisted.
    """
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    total_days = (end_date - start_date).days + 1
    if total_days > MAX_PLAN_DAYS:
        raise ValueError(f"Plans are limited to {MAX_PLAN_DAYS} days")

    slots = [normalize_meal_type(m) for m in (meal_types or []) if normalize_meal_type(m)] or DEFAULT_MEAL_TYPES
    filters = filters or CandidateFilters()

    pools = {meal: recipe_repo.get_candidate_recipes(meal, filters) for meal in slots}
    fallbacks_before = recommender.tracker.count(SCORING_FALLBACK)

    proposals: list[PlanProposal] = []
    for day_offset in range(total_days):
        current_date = start_date + timedelta(days=day_offset)

        for meal in slots:
            try:
                shortlist = recommender.recommend_ranked(
                    user_id, meal, current_date, pools[meal], shortlist_size, now=now
                )
            except NoSafeRecipeError:
                logger.warning(f"No safe {meal} recipe for user {user_id} on {current_date}")
                proposals.append(PlanProposal(
                    meal_date=current_date,
                    meal_type=meal,
                    recipe_id=None,
                    servings=servings_for(meal),
                    reason="no_safe_recipe",
                ))
                continue

            proposals.append(PlanProposal(
                meal_date=current_date,
                meal_type=meal,
                recipe_id=select_recipe_by_pattern(shortlist, fill_pattern, current_date, rng),
                servings=servings_for(meal),
                reason=fill_pattern,
            ))

    filled = sum(1 for p in proposals if p.recipe_id is not None)
    logger.info(f"Smart fill for user {user_id}: {filled}/{len(proposals)} slots over {total_days} days")

    return {
        "user_id": user_id,
        "proposals": proposals,
        "meta": {
            "generated_at": datetime.now().isoformat(),
            "days": total_days,
            "meal_types": slots,
            "filled": filled,
            "unfilled": len(proposals) - filled,
            "scoring_fallbacks": recommender.tracker.count(SCORING_FALLBACK) - fallbacks_before,
        },
    }
