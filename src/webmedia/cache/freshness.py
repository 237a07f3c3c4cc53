from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ..models import CachePolicy
from ..util.time import now_utc, to_utc


def is_fresh(
    policy: CachePolicy,
    exists: bool,
    last_write: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    """Decide whether the cached artifact can be served without a fetch.

    A zero update interval means the artifact is never fresh. A layout saved
    after the artifact was written invalidates it regardless of age.
    """
    if not exists or last_write is None:
        return False
    if policy.update_interval_minutes == 0:
        return False

    written = to_utc(last_write)
    if to_utc(policy.layout_modified_at) > written:
        return False

    current = to_utc(now) if now is not None else now_utc()
    expires = written + timedelta(minutes=policy.update_interval_minutes)
    return current < expires
