# tripwire/telemetry.py
from __future__ import annotations

from time import perf_counter
from typing import Callable, Optional

Clock = Callable[[], float]


class RequestTimer:
    """
    Monotonic request timer. Use as:
      timer = RequestTimer()
      ...
      elapsed = timer.stop()

    clock is injectable so slow-request detection can be tested without sleeping.
    """

    __slots__ = ("_clock", "_t0", "_stopped")

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or perf_counter
        self._t0 = self._clock()
        self._stopped: Optional[float] = None

    def stop(self) -> float:
        if self._stopped is None:
            self._stopped = max(0.0, self._clock() - self._t0)
        return self._stopped
