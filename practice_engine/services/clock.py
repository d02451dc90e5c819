from __future__ import annotations

import time
from datetime import date, datetime

DAY_MS = 86_400_000


def now_ms() -> int:
    return int(time.time() * 1000)


def local_date(ts_ms: int) -> date:
    # local calendar day, not UTC
    return datetime.fromtimestamp(ts_ms / 1000).date()


def today() -> date:
    return local_date(now_ms())
