import random

import pytest

from platepick.schemas import PreferenceSnapshot, RecipeScore
from platepick.services.degradation import SCORING_FALLBACK, DegradationTracker
from platepick.services.recipe_scorer import RecipeScorer, neutral_score
from platepick.services.recipe_selector import RecipeSelector
from helpers import make_context, make_recipe

EMPTY = PreferenceSnapshot.empty()


def fixed_score(recipe_id, total):
    return RecipeScore(
        recipe_id=recipe_id,
        quality=0.0,
        variety=0.0,
        time_fit=0.0,
        nutrition_fit=0.0,
        preference_fit=0.0,
        total=total,
        breakdown="fixed",
    )


class MockScorer:
    """Returns preset totals by recipe id and counts calls."""

    def __init__(self, totals=None):
        self.totals = totals or {}
        self.calls = 0

    def score(self, recipe, context, snapshot):
        self.calls += 1
        return fixed_score(recipe.id, self.totals.get(recipe.id, 1.0))


class RaisingScorer:
    def __init__(self):
        self.calls = 0

    def score(self, recipe, context, snapshot):
        self.calls += 1
        raise RuntimeError("scorer exploded")


class NeutralScorer:
    def score(self, recipe, context, snapshot):
        return neutral_score(recipe.id)


def test_empty_candidates_returns_none():
    assert RecipeSelector(scorer=MockScorer()).select_best([], make_context(), EMPTY) is None


def test_single_candidate_skips_scoring():
    spy = MockScorer()
    selector = RecipeSelector(scorer=spy)
    assert selector.select_best([make_recipe(42)], make_context(), EMPTY) == 42
    assert spy.calls == 0


def test_highest_total_wins():
    spy = MockScorer({1: 2.0, 2: 3.5, 3: 3.0})
    candidates = [make_recipe(i) for i in (1, 2, 3)]
    assert RecipeSelector(scorer=spy).select_best(candidates, make_context(), EMPTY) == 2
    assert spy.calls == 3


def test_tie_goes_to_first_in_list():
    spy = MockScorer({1: 2.0, 2: 3.0, 3: 3.0})
    candidates = [make_recipe(i) for i in (1, 3, 2)]
    assert RecipeSelector(scorer=spy).select_best(candidates, make_context(), EMPTY) == 3


def test_parallel_scoring_keeps_tie_break():
    totals = {i: 3.0 if i in (7, 4) else 1.0 for i in range(1, 11)}
    candidates = [make_recipe(i) for i in (1, 2, 7, 3, 4, 5, 6, 8, 9, 10)]
    selector = RecipeSelector(scorer=MockScorer(totals), max_workers=4)
    assert selector.select_best(candidates, make_context(), EMPTY) == 7


def test_every_scorer_call_raising_still_picks_a_candidate():
    tracker = DegradationTracker()
    scorer = RaisingScorer()
    candidates = [make_recipe(i) for i in (11, 12, 13, 14, 15)]
    selector = RecipeSelector(scorer=scorer, tracker=tracker, rng=random.Random(0))

    chosen = selector.select_best(candidates, make_context(), EMPTY)

    assert chosen in {11, 12, 13, 14, 15}
    assert scorer.calls == 5
    assert tracker.count(SCORING_FALLBACK) == 1


def test_all_neutral_scores_count_as_total_failure():
    tracker = DegradationTracker()
    candidates = [make_recipe(i) for i in (1, 2, 3)]
    selector = RecipeSelector(scorer=NeutralScorer(), tracker=tracker, rng=random.Random(5))

    assert selector.select_best(candidates, make_context(), EMPTY) in {1, 2, 3}
    assert tracker.count(SCORING_FALLBACK) == 1


class PartlyBrokenScorer(RecipeScorer):
    def time_score(self, recipe, context):
        if recipe.id == 2:
            raise ValueError("bad timing data")
        return super().time_score(recipe, context)


def test_one_failing_candidate_competes_with_neutral_score():
    tracker = DegradationTracker()
    candidates = [
        make_recipe(1, rating_average=1.0),
        make_recipe(2, rating_average=1.0),
        make_recipe(3, rating_average=4.5, likes_count=100),
    ]
    selector = RecipeSelector(scorer=PartlyBrokenScorer(), tracker=tracker)
    ranked = selector.rank(candidates, make_context(), EMPTY, top_n=3)

    # Recipe 2 is scored at the neutral 2.5; the others keep their real scores
    assert [s.recipe_id for s in ranked] == [2, 3, 1]
    assert [s.fallback for s in ranked] == [True, False, False]
    assert tracker.count() == 0


def test_rank_orders_by_total_and_truncates():
    spy = MockScorer({1: 1.0, 2: 4.0, 3: 2.0, 4: 4.0})
    candidates = [make_recipe(i) for i in (1, 2, 3, 4)]
    ranked = RecipeSelector(scorer=spy).rank(candidates, make_context(), EMPTY, top_n=3)
    assert [s.recipe_id for s in ranked] == [2, 4, 3]


def test_rank_fallback_returns_neutral_scores_from_candidates():
    tracker = DegradationTracker()
    candidates = [make_recipe(i) for i in (1, 2, 3)]
    selector = RecipeSelector(scorer=RaisingScorer(), tracker=tracker, rng=random.Random(1))

    ranked = selector.rank(candidates, make_context(), EMPTY, top_n=2)

    assert len(ranked) == 2
    assert {s.recipe_id for s in ranked} <= {1, 2, 3}
    assert all(s.fallback for s in ranked)
    assert tracker.count(SCORING_FALLBACK) == 1


@pytest.mark.parametrize("top_n", [0, -1])
def test_rank_with_nothing_requested(top_n):
    assert RecipeSelector(scorer=MockScorer()).rank([make_recipe(1)], make_context(), EMPTY, top_n) == []
