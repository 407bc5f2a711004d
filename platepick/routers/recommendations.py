from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_current_user_id, get_recipe_repo, get_recommender
from ..repositories import CandidateFilters, SqlRecipeRepository
from ..schemas import (
    PreferencesResponse,
    RankedRequest,
    RankedResponse,
    RecommendRequest,
    RecommendResponse,
)
from ..services.recommender import AllergyLookupError, NoSafeRecipeError, Recommender
from ..settings import settings

router = APIRouter()

NO_SAFE_RECIPE_DETAIL = "No recipes are safe for your allergy profile for this meal"
ALLERGY_UNAVAILABLE_DETAIL = "Allergy profile temporarily unavailable"


def load_pool(repo: SqlRecipeRepository, meal_type: str, request: RecommendRequest) -> list:
    if request.candidate_recipe_ids:
        return repo.get_recipes_by_ids(request.candidate_recipe_ids)
    filters = CandidateFilters(
        cuisine_types=tuple(request.cuisine_types),
        max_cook_time=request.max_cook_time,
    )
    return repo.get_candidate_recipes(meal_type, filters)


@router.post("/recommendations", response_model=RecommendResponse)
def recommend(
    request: RecommendRequest,
    user_id: int = Depends(get_current_user_id),
    recommender: Recommender = Depends(get_recommender),
    recipe_repo: SqlRecipeRepository = Depends(get_recipe_repo),
):
    """Single best allergy-safe recipe for the user and meal slot."""
    context = recommender.build_context(user_id, request.meal_type, request.target_date)
    pool = load_pool(recipe_repo, context.meal_type, request)
    try:
        recipe_id = recommender.recommend(user_id, context.meal_type, context.target_date, pool)
    except NoSafeRecipeError:
        raise HTTPException(status_code=404, detail=NO_SAFE_RECIPE_DETAIL)
    except AllergyLookupError:
        raise HTTPException(status_code=503, detail=ALLERGY_UNAVAILABLE_DETAIL)

    return RecommendResponse(recipe_id=recipe_id, meal_type=context.meal_type, target_date=context.target_date)


@router.post("/recommendations/ranked", response_model=RankedResponse)
def recommend_ranked(
    request: RankedRequest,
    user_id: int = Depends(get_current_user_id),
    recommender: Recommender = Depends(get_recommender),
    recipe_repo: SqlRecipeRepository = Depends(get_recipe_repo),
):
    """Top-N allergy-safe recipes with their score breakdowns."""
    context = recommender.build_context(user_id, request.meal_type, request.target_date)
    pool = load_pool(recipe_repo, context.meal_type, request)
    top_n = request.top_n or settings.ranked_default_top_n
    try:
        _, scores = recommender.score_candidates(
            user_id, context.meal_type, context.target_date, pool, top_n
        )
    except NoSafeRecipeError:
        raise HTTPException(status_code=404, detail=NO_SAFE_RECIPE_DETAIL)
    except AllergyLookupError:
        raise HTTPException(status_code=503, detail=ALLERGY_UNAVAILABLE_DETAIL)

    return RankedResponse(
        recipe_ids=[s.recipe_id for s in scores],
        scores=scores,
        meal_type=context.meal_type,
        target_date=context.target_date,
    )


@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(
    as_of: Optional[date] = Query(None, description="Reference date (YYYY-MM-DD), defaults to today"),
    user_id: int = Depends(get_current_user_id),
    recommender: Recommender = Depends(get_recommender),
):
    """Learned preference snapshot, for diagnostics."""
    as_of = as_of or recommender.build_context(user_id, None, None).target_date
    return PreferencesResponse(user_id=user_id, as_of=as_of, snapshot=recommender.preferences(user_id, as_of))
