"""FastAPI dependencies for PlatePick.

Provides:
- Database session dependency
- Current user resolution (X-User-Id header; authentication happens upstream)
- Process-wide scoring config and degradation tracker
- Repositories and the recommender, wired per request
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .db import get_db
from .repositories import (
    CachedAllergyRepository,
    SqlAllergyRepository,
    SqlMealHistoryRepository,
    SqlRecipeRepository,
)
from .services.degradation import DegradationTracker
from .services.recommender import Recommender
from .services.scoring_config import ScoringConfig
from .services.scoring_context import Clock
from .settings import settings

_config: ScoringConfig | None = None
_tracker: DegradationTracker | None = None


def get_scoring_config() -> ScoringConfig:
    """Built and validated once; invalid weights fail at startup."""
    global _config
    if _config is None:
        _config = ScoringConfig.from_settings(settings)
    return _config


def get_tracker() -> DegradationTracker:
    global _tracker
    if _tracker is None:
        _tracker = DegradationTracker()
    return _tracker


def get_clock() -> Optional[Clock]:
    """None means the system clock in the reference timezone."""
    return None


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> int:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid user id '{x_user_id}'")


def get_recipe_repo(db: Session = Depends(get_db)) -> SqlRecipeRepository:
    return SqlRecipeRepository(db)


def get_recommender(
    db: Session = Depends(get_db),
    config: ScoringConfig = Depends(get_scoring_config),
    tracker: DegradationTracker = Depends(get_tracker),
    clock: Optional[Clock] = Depends(get_clock),
) -> Recommender:
    allergy_repo = CachedAllergyRepository(SqlAllergyRepository(db), settings.allergy_cache_ttl_sec)
    return Recommender(
        allergy_repo=allergy_repo,
        history_repo=SqlMealHistoryRepository(db),
        config=config,
        tracker=tracker,
        clock=clock,
    )
