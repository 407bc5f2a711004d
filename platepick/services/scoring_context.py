from datetime import date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..schemas import MealType, NutritionTarget, ScoringContext, normalize_meal_type
from .scoring_config import DEFAULT_CONFIG, RushWindows, ScoringConfig

Clock = Callable[[], datetime]


def system_clock(tz_name: str) -> Clock:
    """Wall clock in the reference timezone. Tests inject a fixed callable instead."""
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz)


def to_reference_time(now: datetime, tz_name: str) -> datetime:
    # Naive values are taken as already local
    if now.tzinfo is None:
        return now
    return now.astimezone(ZoneInfo(tz_name))


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def is_rush_hour(now_local: datetime, windows: RushWindows) -> bool:
    """Weekday morning/midday rush, a fixed heuristic on the local hour."""
    if is_weekend(now_local.date()):
        return False
    return windows.contains(now_local.hour)


def meal_type_for_hour(hour: int) -> str:
    if 5 <= hour < 11:
        return MealType.BREAKFAST.value
    if 11 <= hour < 16:
        return MealType.LUNCH.value
    if 16 <= hour < 21:
        return MealType.DINNER.value
    return MealType.SNACK.value


# meal type -> (share of daily calories, protein g, carbs g, fat g)
_MEAL_TARGETS = {
    MealType.BREAKFAST.value: (0.25, 15, 30, 12),
    MealType.LUNCH.value: (0.35, 25, 45, 18),
    MealType.DINNER.value: (0.40, 30, 50, 20),
    MealType.SNACK.value: (0.10, 8, 15, 6),
}
_DEFAULT_TARGET = (0.30, 20, 35, 15)


def nutrition_target_for(meal_type: str, daily_calories: int = 2000) -> NutritionTarget:
    share, protein, carbs, fat = _MEAL_TARGETS.get(normalize_meal_type(meal_type), _DEFAULT_TARGET)
    return NutritionTarget(
        target_calories=round(daily_calories * share),
        target_protein=protein,
        target_carbs=carbs,
        target_fat=fat,
    )


def build_context(
    now_local: datetime,
    target_date: date,
    meal_type: Optional[str],
    user_id: Optional[int] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> ScoringContext:
    """Build the scoring context for one recommendation request.

    Pure: the caller supplies `now_local`, so the result is deterministic.
    An empty meal type is inferred from the local hour.
    """
    now_local = to_reference_time(now_local, config.reference_timezone)
    meal = normalize_meal_type(meal_type) or meal_type_for_hour(now_local.hour)

    return ScoringContext(
        user_id=user_id,
        meal_type=meal,
        target_date=target_date,
        current_time=now_local.time().replace(tzinfo=None),
        is_weekend=is_weekend(target_date),
        is_rush_hour=is_rush_hour(now_local, config.rush_windows),
        lookback_days=config.lookback_days,
        nutrition_target=nutrition_target_for(meal, config.daily_calories),
    )
