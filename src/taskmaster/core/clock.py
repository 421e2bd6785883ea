# src/taskmaster/core/clock.py

from __future__ import annotations

import time


class SystemClock:
    """Host clock. Timezone handling is whatever the host provides."""

    def now(self) -> float:
        return time.time()
