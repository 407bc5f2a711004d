"""Typed configuration for the recipe scorer.

Weights and breakpoints are deliberate UX heuristics. They are kept here as
explicit frozen values and validated once when the config is built.
"""

import math
from dataclasses import dataclass, field

from ..settings import Settings


class ScoringConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ScoringWeights:
    quality: float = 0.30
    variety: float = 0.25
    time_fit: float = 0.20
    nutrition_fit: float = 0.15
    preference_fit: float = 0.10

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if value < 0:
                raise ScoringConfigError(f"Weight '{name}' must be non-negative, got {value}")
        total = math.fsum(self.as_dict().values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ScoringConfigError(f"Scoring weights must sum to 1.0, got {total}")

    def as_dict(self) -> dict[str, float]:
        return {
            "quality": self.quality,
            "variety": self.variety,
            "time_fit": self.time_fit,
            "nutrition_fit": self.nutrition_fit,
            "preference_fit": self.preference_fit,
        }


@dataclass(frozen=True)
class TimeFitSchedule:
    """Step schedule: first `(max_minutes, score)` with total <= max_minutes wins."""
    steps: tuple[tuple[int, float], ...]
    otherwise: float

    def __post_init__(self):
        limits = [limit for limit, _ in self.steps]
        if limits != sorted(limits):
            raise ScoringConfigError(f"Time breakpoints must be ascending: {limits}")

    def score(self, total_minutes: int) -> float:
        for limit, value in self.steps:
            if total_minutes <= limit:
                return value
        return self.otherwise


@dataclass(frozen=True)
class TimeFitConfig:
    breakfast_rush: TimeFitSchedule = TimeFitSchedule(
        ((10, 1.0), (20, 0.7), (30, 0.4), (45, 0.2)), 0.1
    )
    breakfast_leisure: TimeFitSchedule = TimeFitSchedule(
        ((45, 1.0), (60, 0.8), (90, 0.5)), 0.3
    )
    # Breakfast outside both windows (early morning on a weekday)
    breakfast_neutral: float = 0.5
    # Hours that count as the morning rush even when the context is not flagged
    breakfast_rush_hours: tuple[int, int] = (7, 9)
    breakfast_leisure_from_hour: int = 9

    lunch_rush: TimeFitSchedule = TimeFitSchedule(
        ((20, 1.0), (35, 0.8), (50, 0.5)), 0.2
    )
    lunch_normal: TimeFitSchedule = TimeFitSchedule(
        ((45, 1.0), (60, 0.8), (90, 0.5)), 0.3
    )
    dinner_weekend: TimeFitSchedule = TimeFitSchedule(
        ((120, 1.0), (180, 0.8)), 0.5
    )
    dinner_weekday: TimeFitSchedule = TimeFitSchedule(
        ((60, 1.0), (90, 0.8), (120, 0.6)), 0.4
    )
    snack: TimeFitSchedule = TimeFitSchedule(
        ((5, 1.0), (15, 0.8), (30, 0.4)), 0.1
    )
    default: TimeFitSchedule = TimeFitSchedule(
        ((30, 1.0), (60, 0.8), (90, 0.6)), 0.4
    )


@dataclass(frozen=True)
class VarietyBuckets:
    """Half-open buckets on days since last use: `days < limit` -> score."""
    steps: tuple[tuple[int, float], ...] = ((1, 0.0), (3, 0.1), (7, 0.3), (14, 0.7))
    otherwise: float = 1.0
    never_used: float = 1.0

    def score(self, days_since_used: int) -> float:
        for limit, value in self.steps:
            if days_since_used < limit:
                return value
        return self.otherwise


@dataclass(frozen=True)
class RushWindows:
    """Local-hour windows, half-open [start, end), applied on weekdays."""
    breakfast: tuple[int, int] = (7, 9)
    lunch: tuple[int, int] = (11, 13)

    def __post_init__(self):
        for start, end in (self.breakfast, self.lunch):
            if not (0 <= start < end <= 24):
                raise ScoringConfigError(f"Invalid rush window [{start}, {end})")

    def contains(self, hour: int) -> bool:
        return any(start <= hour < end for start, end in (self.breakfast, self.lunch))


@dataclass(frozen=True)
class ScoringConfig:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    time_fit: TimeFitConfig = field(default_factory=TimeFitConfig)
    variety: VarietyBuckets = field(default_factory=VarietyBuckets)
    rush_windows: RushWindows = field(default_factory=RushWindows)
    reference_timezone: str = "Asia/Ho_Chi_Minh"
    lookback_days: int = 14
    analysis_window_days: int = 90
    max_workers: int = 1
    daily_calories: int = 2000

    def __post_init__(self):
        if self.lookback_days < 1:
            raise ScoringConfigError("lookback_days must be >= 1")
        if self.analysis_window_days < self.lookback_days:
            raise ScoringConfigError("analysis_window_days must cover lookback_days")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScoringConfig":
        return cls(
            rush_windows=RushWindows(
                breakfast=(settings.breakfast_rush_start, settings.breakfast_rush_end),
                lunch=(settings.lunch_rush_start, settings.lunch_rush_end),
            ),
            reference_timezone=settings.reference_timezone,
            lookback_days=settings.lookback_days,
            analysis_window_days=settings.analysis_window_days,
            max_workers=settings.scoring_max_workers,
            daily_calories=settings.daily_calories or 2000,
        )


DEFAULT_CONFIG = ScoringConfig()
