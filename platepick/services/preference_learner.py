"""Preference learning from a user's meal history.

Two windows on purpose:
- analysis window (default 90 days): cuisine/meal-type stats, completion
  rates, favorites
- lookback window (default 14 days): recently used recipes for variety

History is read once per request. A read failure yields an empty snapshot,
which scoring treats as neutral rather than as a dislike of everything.
"""

import logging
from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional

from ..repositories import MealHistoryRepository
from ..schemas import CuisineStat, MealHistoryEntry, MealTypeStat, PreferenceSnapshot
from .degradation import SNAPSHOT_FALLBACK, DegradationTracker
from .scoring_config import DEFAULT_CONFIG, ScoringConfig

logger = logging.getLogger("platepick.preferences")

MIN_ATTEMPTS = 2
FAVORITE_COMPLETION_RATE = 0.8


class PreferenceLearner:
    def __init__(
        self,
        history_repo: MealHistoryRepository,
        config: ScoringConfig = DEFAULT_CONFIG,
        tracker: Optional[DegradationTracker] = None,
    ):
        self.history_repo = history_repo
        self.config = config
        self.tracker = tracker

    def build_snapshot(self, user_id: int, as_of: date) -> PreferenceSnapshot:
        since = as_of - timedelta(days=self.config.analysis_window_days)
        try:
            entries = self.history_repo.get_meal_history(user_id, since)
        except Exception as e:
            logger.error(f"Meal history read failed for user {user_id}, using neutral snapshot: {e}", exc_info=True)
            if self.tracker is not None:
                self.tracker.record(SNAPSHOT_FALLBACK, detail=str(e), user_id=user_id)
            return PreferenceSnapshot.empty()

        snapshot = analyze_history(entries, as_of, self.config.lookback_days)
        logger.info(
            f"User {user_id} preferences - entries: {snapshot.entries_analyzed}, "
            f"cuisines: {len(snapshot.cuisine_stats)}, recent: {len(snapshot.recently_used_recipe_ids)}, "
            f"favorites: {len(snapshot.favorite_recipe_ids)}"
        )
        return snapshot


def analyze_history(
    entries: Iterable[MealHistoryEntry],
    as_of: date,
    lookback_days: int = 14,
) -> PreferenceSnapshot:
    """Pure aggregation of history entries into a snapshot."""
    entries = [e for e in entries if e is not None and e.recipe_id is not None]
    if not entries:
        return PreferenceSnapshot.empty()

    total = len(entries)

    # Cuisine: usage ratio over all entries, completion within the group
    cuisine_groups: dict[str, list[MealHistoryEntry]] = defaultdict(list)
    for e in entries:
        if e.cuisine_type:
            cuisine_groups[e.cuisine_type].append(e)

    cuisine_stats = {
        cuisine: CuisineStat(
            cuisine_type=cuisine,
            usage_count=len(group),
            usage_ratio=len(group) / total,
            completion_rate=sum(1 for e in group if e.completed) / len(group),
        )
        for cuisine, group in cuisine_groups.items()
    }

    meal_type_counts = Counter(e.recipe_meal_type for e in entries if e.recipe_meal_type)
    meal_type_stats = {
        meal_type: MealTypeStat(meal_type=meal_type, usage_count=count, usage_ratio=count / total)
        for meal_type, count in meal_type_counts.items()
    }

    # Per-recipe attempts
    attempts: Counter = Counter()
    completions: Counter = Counter()
    for e in entries:
        attempts[e.recipe_id] += 1
        if e.completed:
            completions[e.recipe_id] += 1

    completion_rates = {
        rid: completions[rid] / count
        for rid, count in attempts.items()
        if count >= MIN_ATTEMPTS
    }
    favorites = frozenset(
        rid for rid, rate in completion_rates.items() if rate >= FAVORITE_COMPLETION_RATE
    )

    # Recency; entries planned after as_of count as most recent
    cutoff = as_of - timedelta(days=lookback_days)
    last_used_on: dict[int, date] = {}
    for e in entries:
        if e.meal_date < cutoff:
            continue
        prev = last_used_on.get(e.recipe_id)
        if prev is None or e.meal_date > prev:
            last_used_on[e.recipe_id] = e.meal_date

    return PreferenceSnapshot(
        cuisine_stats=cuisine_stats,
        meal_type_stats=meal_type_stats,
        recently_used_recipe_ids=frozenset(last_used_on),
        last_used_on=last_used_on,
        favorite_recipe_ids=favorites,
        completion_rates=completion_rates,
        entries_analyzed=total,
    )
