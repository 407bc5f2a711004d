from fastapi import APIRouter, Depends

from ..deps import get_tracker
from ..infra.redis_client import get_sync_redis
from ..services.degradation import SCORING_FALLBACK, SNAPSHOT_FALLBACK, DegradationTracker

router = APIRouter()


@router.get("/ready")
def ready(tracker: DegradationTracker = Depends(get_tracker)):
    redis_ok = False
    try:
        redis_ok = bool(get_sync_redis().ping())
    except Exception:
        pass
    return {
        "ok": True,
        "redis_ok": redis_ok,
        "degradations": {
            SCORING_FALLBACK: tracker.count(SCORING_FALLBACK),
            SNAPSHOT_FALLBACK: tracker.count(SNAPSHOT_FALLBACK),
        },
    }
