"""Wall-clock helpers. All timestamps in this package are epoch milliseconds."""
from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], float]

MS_PER_SECOND: int = 1000
MS_PER_MINUTE: int = 60 * MS_PER_SECOND
MS_PER_HOUR: int = 60 * MS_PER_MINUTE
MS_PER_DAY: int = 24 * MS_PER_HOUR


def now_ms() -> float:
    """Return the current UTC time as epoch milliseconds."""
    return time.time() * MS_PER_SECOND
