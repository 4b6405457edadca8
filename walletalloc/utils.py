import json
import time
from datetime import datetime, timezone

def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")

def to_utc_iso(value: str) -> str:
    """Re-render an RFC3339 timestamp in the stored form (UTC, microseconds, +00:00).

    Accepts a trailing Z, any offset and any fraction length; naive values are
    taken as UTC. Raises ValueError for anything fromisoformat rejects.
    """
    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")

def dumps_or_none(obj) -> str | None:
    if obj is None:
        return None
    return json.dumps(obj, sort_keys=True, default=str)

def retry_call(
    fn,
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 5.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
):
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on:
            if attempt >= attempts:
                raise
            delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
            if delay > 0:
                time.sleep(delay)
    raise ValueError("attempts must be >= 1")
