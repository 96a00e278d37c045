"""Small helpers shared by the polling loops."""

import time


class Backoff:
    """Sleep schedule for polling loops: starts short, doubles up to a cap."""

    def __init__(self, initial: float = 0.01, maximum: float = 0.2, sleep=time.sleep) -> None:
        self.initial = initial
        self.maximum = maximum
        self._delay = initial
        self._sleep = sleep

    def wait(self) -> None:
        self._sleep(self._delay)
        self._delay = min(self._delay * 2, self.maximum)

    def reset(self) -> None:
        self._delay = self.initial
