import json

from .redis_client import get_sync_redis


def get_or_set_json_sync(key: str, ttl_sec: int, compute_func):
    """Return (value, hit). Misses are computed, stored with a TTL and returned."""
    r = get_sync_redis()
    raw = r.get(key)
    if raw:
        return json.loads(raw), True

    val = compute_func()
    r.set(key, json.dumps(val), ex=ttl_sec)
    return val, False
