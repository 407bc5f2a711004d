"""Multi-factor recipe scoring.

total = quality*w_q + variety*w_v + time_fit*w_t + nutrition_fit*w_n + preference_fit*w_p

Quality stays on its 0-5 scale in the sum so it dominates ties; the other
four are 0-1. A failure while scoring one recipe yields NEUTRAL_SCORE for that
recipe only.
"""

import logging

from ..schemas import MealType, PreferenceSnapshot, RecipeScore, ScoringContext, normalize_meal_type
from .scoring_config import DEFAULT_CONFIG, ScoringConfig

logger = logging.getLogger("platepick.scoring")

# Quality
RATING_WEIGHT = 0.7
LIKES_WEIGHT = 0.2
LIKES_CAP = 100.0
PROFESSIONAL_BONUS = 0.1
MAX_QUALITY = 5.0

# Preference
CUISINE_WEIGHT = 0.6
UNSEEN_CUISINE_SCORE = 0.3
COMPLETION_WEIGHT = 0.4
UNTRIED_RECIPE_SCORE = 0.2

# Nutrition targets are attached to the context but not matched yet
NEUTRAL_NUTRITION_SCORE = 0.5

NEUTRAL_QUALITY = 2.5
NEUTRAL_SUBSCORE = 0.5
NEUTRAL_TOTAL = 2.5


def neutral_score(recipe_id) -> RecipeScore:
    return RecipeScore(
        recipe_id=recipe_id,
        quality=NEUTRAL_QUALITY,
        variety=NEUTRAL_SUBSCORE,
        time_fit=NEUTRAL_SUBSCORE,
        nutrition_fit=NEUTRAL_SUBSCORE,
        preference_fit=NEUTRAL_SUBSCORE,
        total=NEUTRAL_TOTAL,
        breakdown="Error in calculation",
        fallback=True,
    )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class RecipeScorer:
    def __init__(self, config: ScoringConfig = DEFAULT_CONFIG):
        self.config = config

    def score(self, recipe, context: ScoringContext, snapshot: PreferenceSnapshot) -> RecipeScore:
        recipe_id = getattr(recipe, "id", None)
        try:
            quality = self.quality_score(recipe)
            variety = self.variety_score(recipe, context, snapshot)
            time_fit = self.time_score(recipe, context)
            nutrition_fit = self.nutrition_score(recipe, context)
            preference_fit = self.preference_score(recipe, snapshot)

            w = self.config.weights
            total = (
                quality * w.quality
                + variety * w.variety
                + time_fit * w.time_fit
                + nutrition_fit * w.nutrition_fit
                + preference_fit * w.preference_fit
            )
            breakdown = (
                f"Quality:{quality:.2f}({w.quality}), "
                f"Variety:{variety:.2f}({w.variety}), "
                f"Time:{time_fit:.2f}({w.time_fit}), "
                f"Nutrition:{nutrition_fit:.2f}({w.nutrition_fit}), "
                f"Preference:{preference_fit:.2f}({w.preference_fit})"
            )
            return RecipeScore(
                recipe_id=recipe_id,
                quality=quality,
                variety=variety,
                time_fit=time_fit,
                nutrition_fit=nutrition_fit,
                preference_fit=preference_fit,
                total=total,
                breakdown=breakdown,
            )
        except Exception as e:
            logger.error(f"Error calculating score for recipe {recipe_id}: {e}", exc_info=True)
            return neutral_score(recipe_id)

    # --- Sub-scores ---

    def quality_score(self, recipe) -> float:
        rating = float(getattr(recipe, "rating_average", None) or 0)
        likes = getattr(recipe, "likes_count", None) or 0
        is_custom = bool(getattr(recipe, "is_custom", None) or False)

        score = rating * RATING_WEIGHT
        score += min(likes / LIKES_CAP, 1.0) * LIKES_WEIGHT
        if not is_custom:
            score += PROFESSIONAL_BONUS
        return min(score, MAX_QUALITY)

    def variety_score(self, recipe, context: ScoringContext, snapshot: PreferenceSnapshot) -> float:
        buckets = self.config.variety
        last_used = snapshot.last_used_on.get(getattr(recipe, "id", None))
        if last_used is None:
            return buckets.never_used
        days_since = (context.target_date - last_used).days
        return buckets.score(days_since)

    def time_score(self, recipe, context: ScoringContext) -> float:
        total = recipe.total_time_minutes
        tf = self.config.time_fit
        meal = normalize_meal_type(context.meal_type)
        hour = context.current_time.hour

        if meal == MealType.BREAKFAST.value:
            rush_start, rush_end = tf.breakfast_rush_hours
            if context.is_rush_hour or rush_start <= hour < rush_end:
                score = tf.breakfast_rush.score(total)
            elif context.is_weekend or hour >= tf.breakfast_leisure_from_hour:
                score = tf.breakfast_leisure.score(total)
            else:
                score = tf.breakfast_neutral
        elif meal == MealType.LUNCH.value:
            schedule = tf.lunch_rush if context.is_rush_hour else tf.lunch_normal
            score = schedule.score(total)
        elif meal == MealType.DINNER.value:
            schedule = tf.dinner_weekend if context.is_weekend else tf.dinner_weekday
            score = schedule.score(total)
        elif meal == MealType.SNACK.value:
            score = tf.snack.score(total)
        else:
            score = tf.default.score(total)

        return _clamp(score)

    def nutrition_score(self, recipe, context: ScoringContext) -> float:
        nutrition = getattr(recipe, "nutrition", None)
        if nutrition is None or context.nutrition_target is None:
            return NEUTRAL_NUTRITION_SCORE
        # Facts and target are available; no matching is applied, the neutral score stands
        return NEUTRAL_NUTRITION_SCORE

    def preference_score(self, recipe, snapshot: PreferenceSnapshot) -> float:
        score = 0.0

        cuisine = getattr(recipe, "cuisine_type", None)
        if cuisine:
            stat = snapshot.cuisine_stats.get(cuisine)
            if stat is not None:
                score += stat.usage_ratio * CUISINE_WEIGHT
            else:
                score += UNSEEN_CUISINE_SCORE

        rate = snapshot.completion_rates.get(getattr(recipe, "id", None))
        if rate is not None:
            score += rate * COMPLETION_WEIGHT
        else:
            score += UNTRIED_RECIPE_SCORE

        return _clamp(score)
