import logging
import os
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from ..schemas import PreferenceSnapshot, RecipeScore, ScoringContext
from .degradation import SCORING_FALLBACK, DegradationTracker
from .recipe_scorer import RecipeScorer, neutral_score

logger = logging.getLogger("platepick.selector")


class RecipeSelector:
    """Pick the best recipe among candidates.

    Precondition: `candidates` have already passed the allergy filter. The
    selector does not re-check allergens, and every fallback pick is drawn
    from the same list, so it can only return what the caller already vetted.

    Ties on total score go to the candidate that comes first in the list.
    """

    def __init__(
        self,
        scorer: Optional[RecipeScorer] = None,
        tracker: Optional[DegradationTracker] = None,
        max_workers: int = 1,
        rng: Optional[random.Random] = None,
    ):
        self.scorer = scorer or RecipeScorer()
        self.tracker = tracker or DegradationTracker()
        self.max_workers = max_workers
        self.rng = rng or random.Random()

    def select_best(
        self,
        candidates: Sequence,
        context: ScoringContext,
        snapshot: PreferenceSnapshot,
    ) -> Optional[int]:
        if not candidates:
            logger.warning("No candidates provided for selection")
            return None

        if len(candidates) == 1:
            return candidates[0].id

        try:
            scored = self._successful(candidates, self._score_all(candidates, context, snapshot))
        except Exception as e:
            logger.error(f"Scoring pipeline failed: {e}", exc_info=True)
            scored = []

        if not scored:
            return self._fallback_pick(candidates, context).id

        best_recipe, best_score = scored[0]
        for recipe, score in scored[1:]:
            if score.total > best_score.total:
                best_recipe, best_score = recipe, score

        logger.info(
            f"Selected recipe {best_recipe.id} '{getattr(best_recipe, 'name', '')}' "
            f"scored {best_score.total:.2f} for user {context.user_id} ({best_score.breakdown})"
        )
        return best_recipe.id

    def rank(
        self,
        candidates: Sequence,
        context: ScoringContext,
        snapshot: PreferenceSnapshot,
        top_n: int,
    ) -> list[RecipeScore]:
        """Top-N scores, best first. Stable sort keeps list order on ties."""
        if not candidates or top_n < 1:
            return []

        try:
            scored = self._successful(candidates, self._score_all(candidates, context, snapshot))
        except Exception as e:
            logger.error(f"Scoring pipeline failed: {e}", exc_info=True)
            scored = []

        if not scored:
            picks = self.rng.sample(list(candidates), min(top_n, len(candidates)))
            self._record_fallback(context, len(candidates))
            return [neutral_score(r.id) for r in picks]

        ranked = sorted((score for _, score in scored), key=lambda s: s.total, reverse=True)
        return ranked[:top_n]

    # --- internals ---

    def _score_one(self, recipe, context, snapshot) -> Optional[RecipeScore]:
        try:
            return self.scorer.score(recipe, context, snapshot)
        except Exception as e:
            logger.error(f"Scorer raised for recipe {getattr(recipe, 'id', None)}: {e}", exc_info=True)
            return None

    def _workers(self, n: int) -> int:
        workers = self.max_workers if self.max_workers > 0 else (os.cpu_count() or 1)
        return max(1, min(workers, n))

    def _score_all(self, candidates, context, snapshot) -> list[Optional[RecipeScore]]:
        workers = self._workers(len(candidates))
        if workers == 1:
            return [self._score_one(r, context, snapshot) for r in candidates]
        # map() yields in input order, so the tie-break is unaffected
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda r: self._score_one(r, context, snapshot), candidates))

    @staticmethod
    def _successful(candidates, scores) -> list[tuple]:
        pairs = [(r, s) for r, s in zip(candidates, scores) if s is not None]
        # Nothing to rank if every score is the neutral placeholder
        if all(s.fallback for _, s in pairs):
            return []
        return pairs

    def _fallback_pick(self, candidates, context: ScoringContext):
        choice = self.rng.choice(list(candidates))
        self._record_fallback(context, len(candidates))
        return choice

    def _record_fallback(self, context: ScoringContext, n: int) -> None:
        logger.warning(
            f"Scoring failed for all {n} candidates (user {context.user_id}, {context.meal_type} "
            f"on {context.target_date}); falling back to random safe pick"
        )
        self.tracker.record(
            SCORING_FALLBACK,
            detail=f"{context.meal_type} {context.target_date} candidates={n}",
            user_id=context.user_id,
        )
