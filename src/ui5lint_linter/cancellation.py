import threading
import time
from typing import Optional


class CancelToken:
    """Cancellation signal checked by the analyzer between traversal steps.

    Cancelled explicitly with ``cancel()`` or implicitly once ``timeout``
    seconds have passed since creation.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self.timeout = timeout
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled"):
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(f"timeout of {self.timeout:g}s exceeded")
            return True
        return False
