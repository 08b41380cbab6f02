from __future__ import annotations

import time
from datetime import datetime, timezone


def now_unix() -> int:
    """Return the current time as whole seconds since the epoch."""
    return int(time.time())


def unix_to_iso(value: int) -> str:
    return datetime.fromtimestamp(value, timezone.utc).isoformat()
