from __future__ import annotations

import time
from collections.abc import Callable

from src.domain.entities.toast import Severity, Toast

TOAST_DURATION_SECONDS = 3.0


class ToastStore:
    """Single-slot notification holder.

    Showing a toast replaces whatever is displayed. A toast hides itself
    ``duration`` seconds after it was shown, or earlier through ``hide``.
    """

    def __init__(
        self,
        duration: float = TOAST_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration = duration
        self._clock = clock
        self._toast = Toast(message="", severity="info", visible=False)
        self._expires_at = 0.0

    def show(self, message: str, severity: Severity) -> None:
        self._toast = Toast(message=message, severity=severity)
        self._expires_at = self._clock() + self.duration

    def hide(self) -> None:
        self._toast = Toast(self._toast.message, self._toast.severity, visible=False)

    @property
    def current(self) -> Toast:
        if self._toast.visible and self._clock() >= self._expires_at:
            self.hide()
        return self._toast
