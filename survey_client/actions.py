"""Shared view-state helpers: the single in-flight guard and user notices."""
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, List, Literal

from survey_client.errors import ActionInProgress


class InFlight:
    """Boolean "in progress" flag for one user action.

    While set, the triggering control is disabled and a second trigger
    raises `ActionInProgress` without issuing a request.
    """

    def __init__(self, name: str):
        self.name = name
        self.active = False

    @contextmanager
    def guard(self):
        if self.active:
            raise ActionInProgress(f"'{self.name}' is already in progress")
        self.active = True
        try:
            yield
        finally:
            self.active = False


@dataclass(frozen=True)
class Notice:
    level: Literal["success", "error"]
    message: str


class Notices:
    """Non-fatal toast-style notifications, newest last."""

    def __init__(self):
        self.items: List[Notice] = []

    def success(self, message: str) -> None:
        self.items.append(Notice("success", message))

    def error(self, message: str) -> None:
        self.items.append(Notice("error", message))

    def latest(self):
        return self.items[-1] if self.items else None


class TransientFlag:
    """A flag that reads true for `duration` seconds after it is raised."""

    def __init__(self, duration: float, clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self._clock = clock
        self._raised_at = None

    def raise_(self) -> None:
        self._raised_at = self._clock()

    @property
    def is_set(self) -> bool:
        if self._raised_at is None:
            return False
        return self._clock() - self._raised_at < self.duration
