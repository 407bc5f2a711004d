"""Recommendation facade.

Per request: allergen ids are read once, the pool is safety-filtered, then the
context and preference snapshot are built once and shared by every candidate.

Callers must tell two outcomes apart:
- `NoSafeRecipeError`: nothing in the pool is safe for the user (hard failure)
- a returned id chosen by random fallback (soft, recorded on the tracker)
"""

import logging
import random
from datetime import date, datetime
from typing import Optional, Sequence

from ..models import Recipe
from ..repositories import AllergyRepository, MealHistoryRepository, recipe_to_snapshot
from ..schemas import PreferenceSnapshot, RecipeScore, RecipeSnapshot, ScoringContext
from .allergy_filter import filter_safe
from .degradation import DegradationTracker
from .preference_learner import PreferenceLearner
from .recipe_scorer import RecipeScorer
from .recipe_selector import RecipeSelector
from .scoring_config import DEFAULT_CONFIG, ScoringConfig
from .scoring_context import Clock, build_context, system_clock, to_reference_time

logger = logging.getLogger("platepick.recommender")


class RecommendationError(Exception):
    pass


class NoSafeRecipeError(RecommendationError):
    def __init__(self, user_id: int, meal_type: str, pool_size: int):
        self.user_id = user_id
        self.meal_type = meal_type
        self.pool_size = pool_size
        super().__init__(
            f"No allergy-safe {meal_type or 'meal'} recipe for user {user_id} "
            f"({pool_size} candidates before filtering)"
        )


class AllergyLookupError(RecommendationError):
    """The user's allergen set could not be loaded; nothing can be recommended safely."""


class Recommender:
    def __init__(
        self,
        allergy_repo: AllergyRepository,
        history_repo: MealHistoryRepository,
        config: ScoringConfig = DEFAULT_CONFIG,
        tracker: Optional[DegradationTracker] = None,
        clock: Optional[Clock] = None,
        scorer: Optional[RecipeScorer] = None,
        rng: Optional[random.Random] = None,
    ):
        self.allergy_repo = allergy_repo
        self.config = config
        self.tracker = tracker or DegradationTracker()
        self.clock = clock or system_clock(config.reference_timezone)
        self.learner = PreferenceLearner(history_repo, config, self.tracker)
        self.selector = RecipeSelector(
            scorer=scorer or RecipeScorer(config),
            tracker=self.tracker,
            max_workers=config.max_workers,
            rng=rng,
        )

    def safe_candidates(self, user_id: int, meal_type: Optional[str], candidate_pool: Sequence) -> list:
        try:
            allergen_ids = set(self.allergy_repo.get_user_allergen_ids(user_id) or [])
        except Exception as e:
            logger.error(f"Could not load allergies for user {user_id}: {e}", exc_info=True)
            raise AllergyLookupError(f"Allergy profile unavailable for user {user_id}") from e

        pool = self._as_snapshots(candidate_pool or [])
        safe = filter_safe(pool, allergen_ids)
        logger.info(
            f"User {user_id}: {len(safe)}/{len(pool)} {meal_type or ''} candidates pass allergy filter "
            f"(avoiding {sorted(allergen_ids)})"
        )
        if not safe:
            raise NoSafeRecipeError(user_id, meal_type or "", len(pool))
        return safe

    @staticmethod
    def _as_snapshots(candidate_pool: Sequence) -> list[RecipeSnapshot]:
        """ORM rows are converted; anything the filter cannot read is dropped."""
        pool = []
        for candidate in candidate_pool:
            if isinstance(candidate, RecipeSnapshot):
                pool.append(candidate)
            elif isinstance(candidate, Recipe):
                pool.append(recipe_to_snapshot(candidate))
            else:
                logger.error(
                    f"Candidate {getattr(candidate, 'id', None)} dropped: unsupported type {type(candidate).__name__}"
                )
        return pool

    def build_context(
        self,
        user_id: int,
        meal_type: Optional[str],
        target_date: Optional[date],
        now: Optional[datetime] = None,
    ) -> ScoringContext:
        now_local = to_reference_time(now or self.clock(), self.config.reference_timezone)
        return build_context(
            now_local,
            target_date or now_local.date(),
            meal_type,
            user_id=user_id,
            config=self.config,
        )

    def preferences(self, user_id: int, as_of: date) -> PreferenceSnapshot:
        return self.learner.build_snapshot(user_id, as_of)

    def recommend(
        self,
        user_id: int,
        meal_type: Optional[str],
        target_date: Optional[date],
        candidate_pool: Sequence,
        now: Optional[datetime] = None,
    ) -> int:
        """Single best safe recipe id. Raises NoSafeRecipeError when none exists."""
        safe = self.safe_candidates(user_id, meal_type, candidate_pool)
        context = self.build_context(user_id, meal_type, target_date, now)

        if len(safe) == 1:
            return safe[0].id

        snapshot = self.learner.build_snapshot(user_id, context.target_date)
        recipe_id = self.selector.select_best(safe, context, snapshot)
        if recipe_id is None:
            raise NoSafeRecipeError(user_id, context.meal_type, len(safe))
        return recipe_id

    def score_candidates(
        self,
        user_id: int,
        meal_type: Optional[str],
        target_date: Optional[date],
        candidate_pool: Sequence,
        top_n: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> tuple[ScoringContext, list[RecipeScore]]:
        safe = self.safe_candidates(user_id, meal_type, candidate_pool)
        context = self.build_context(user_id, meal_type, target_date, now)
        snapshot = self.learner.build_snapshot(user_id, context.target_date)
        return context, self.selector.rank(safe, context, snapshot, top_n or len(safe))

    def recommend_ranked(
        self,
        user_id: int,
        meal_type: Optional[str],
        target_date: Optional[date],
        candidate_pool: Sequence,
        top_n: int,
        now: Optional[datetime] = None,
    ) -> list[int]:
        """Up to `top_n` safe recipe ids, best first."""
        _, scores = self.score_candidates(user_id, meal_type, target_date, candidate_pool, top_n, now)
        return [s.recipe_id for s in scores]
