"""Pydantic schemas for PlatePick.

Engine read snapshots (immutable for the duration of one request):
- Recipes with ingredient usages, allergen tags and nutrition facts
- Meal history entries
- Preference snapshots, scoring contexts and recipe scores

Request/response models for the HTTP adapter live at the bottom.
"""

from datetime import date, time
from enum import Enum
from typing import Optional, Literal

from pydantic import BaseModel, Field


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


def normalize_meal_type(value: Optional[str]) -> str:
    """Lower-case, trimmed meal type. Unknown values pass through."""
    if value is None:
        return ""
    if isinstance(value, MealType):
        return value.value
    return str(value).strip().lower()


# --- Recipe snapshots ---

class IngredientRef(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    allergen_ids: list[int] = Field(default_factory=list)

    class Config:
        frozen = True
        from_attributes = True


class IngredientUsage(BaseModel):
    ingredient: Optional[IngredientRef] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True


class NutritionFacts(BaseModel):
    calories: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class RecipeSnapshot(BaseModel):
    id: int
    name: str = ""
    cuisine_type: Optional[str] = None
    meal_type: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    servings: Optional[int] = None
    rating_average: Optional[float] = None
    likes_count: Optional[int] = None
    is_custom: Optional[bool] = None
    ingredients: list[IngredientUsage] = Field(default_factory=list)
    allergen_ids: list[int] = Field(default_factory=list)  # directly tagged
    nutrition: Optional[NutritionFacts] = None

    class Config:
        frozen = True
        from_attributes = True

    @property
    def total_time_minutes(self) -> int:
        return (self.prep_time_minutes or 0) + (self.cook_time_minutes or 0)


# --- Meal history ---

class MealHistoryEntry(BaseModel):
    meal_date: date
    meal_type: Optional[str] = None
    recipe_id: Optional[int] = None
    completed: bool = False
    # Joined from the referenced recipe
    cuisine_type: Optional[str] = None
    recipe_meal_type: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True


# --- Preference snapshot ---

class CuisineStat(BaseModel):
    cuisine_type: str
    usage_count: int
    usage_ratio: float
    completion_rate: float

    class Config:
        frozen = True


class MealTypeStat(BaseModel):
    meal_type: str
    usage_count: int
    usage_ratio: float

    class Config:
        frozen = True


class PreferenceSnapshot(BaseModel):
    """Request-scoped view of a user's history. Empty means neutral."""
    cuisine_stats: dict[str, CuisineStat] = Field(default_factory=dict)
    meal_type_stats: dict[str, MealTypeStat] = Field(default_factory=dict)
    recently_used_recipe_ids: frozenset[int] = frozenset()
    last_used_on: dict[int, date] = Field(default_factory=dict)
    favorite_recipe_ids: frozenset[int] = frozenset()
    completion_rates: dict[int, float] = Field(default_factory=dict)
    entries_analyzed: int = 0

    class Config:
        frozen = True

    @classmethod
    def empty(cls) -> "PreferenceSnapshot":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.entries_analyzed == 0


# --- Scoring ---

class NutritionTarget(BaseModel):
    target_calories: int
    target_protein: float
    target_carbs: float
    target_fat: float

    class Config:
        frozen = True


class ScoringContext(BaseModel):
    user_id: Optional[int] = None
    meal_type: str
    target_date: date
    current_time: time
    is_weekend: bool
    is_rush_hour: bool
    lookback_days: int = 14
    nutrition_target: Optional[NutritionTarget] = None

    class Config:
        frozen = True


class RecipeScore(BaseModel):
    recipe_id: Optional[int]
    quality: float
    variety: float
    time_fit: float
    nutrition_fit: float
    preference_fit: float
    total: float
    breakdown: str
    fallback: bool = False

    class Config:
        frozen = True


# --- API: recommendations ---

class RecommendRequest(BaseModel):
    meal_type: Optional[str] = None  # inferred from the local hour when omitted
    target_date: Optional[date] = None
    cuisine_types: list[str] = Field(default_factory=list)
    max_cook_time: Optional[int] = Field(None, ge=0)
    candidate_recipe_ids: Optional[list[int]] = None


class RecommendResponse(BaseModel):
    recipe_id: int
    meal_type: str
    target_date: date


class RankedRequest(RecommendRequest):
    top_n: Optional[int] = Field(None, ge=1, le=100)


class RankedResponse(BaseModel):
    recipe_ids: list[int]
    scores: list[RecipeScore]
    meal_type: str
    target_date: date


class PreferencesResponse(BaseModel):
    user_id: int
    as_of: date
    snapshot: PreferenceSnapshot


# --- API: plan auto-fill ---

FillPattern = Literal["best", "random", "rotate", "same"]


class SmartFillRequest(BaseModel):
    start_date: date
    end_date: date
    meal_types: list[str] = Field(default_factory=list)
    fill_pattern: FillPattern = "random"
    shortlist_size: int = Field(5, ge=1, le=50)
    cuisine_types: list[str] = Field(default_factory=list)
    max_cook_time: Optional[int] = Field(None, ge=0)


class PlanProposal(BaseModel):
    meal_date: date
    meal_type: str
    recipe_id: Optional[int]
    servings: int
    reason: str


class SmartFillResponse(BaseModel):
    user_id: int
    proposals: list[PlanProposal]
    meta: dict
