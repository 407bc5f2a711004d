from fastapi import APIRouter, Depends, HTTPException

from ..agents.planner_agent import generate_plan_proposals
from ..deps import get_current_user_id, get_recipe_repo, get_recommender
from ..repositories import CandidateFilters, SqlRecipeRepository
from ..schemas import SmartFillRequest, SmartFillResponse
from ..services.recommender import AllergyLookupError, Recommender

router = APIRouter()


@router.post("/plan/smart-fill", response_model=SmartFillResponse)
def smart_fill(
    request: SmartFillRequest,
    user_id: int = Depends(get_current_user_id),
    recommender: Recommender = Depends(get_recommender),
    recipe_repo: SqlRecipeRepository = Depends(get_recipe_repo),
):
    """Propose a safe recipe for every meal slot in a date range. Nothing is saved."""
    filters = CandidateFilters(
        cuisine_types=tuple(request.cuisine_types),
        max_cook_time=request.max_cook_time,
    )
    try:
        result = generate_plan_proposals(
            recommender,
            recipe_repo,
            user_id,
            request.start_date,
            request.end_date,
            meal_types=request.meal_types,
            fill_pattern=request.fill_pattern,
            shortlist_size=request.shortlist_size,
            filters=filters,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllergyLookupError:
        raise HTTPException(status_code=503, detail="Allergy profile temporarily unavailable")
    return SmartFillResponse(**result)
