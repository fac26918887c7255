"""Single-slot availability gate.

At most one addressed message is processed at a time per bot instance.
Messages arriving while the gate is held are dropped, not queued.
"""

from __future__ import annotations

import time
from types import TracebackType

from ..core.logger import get_logger

logger = get_logger("chat.gate")


class AvailabilityGate:
    """A busy flag with non-blocking acquisition.

    The event loop is single-threaded and ``try_acquire`` never awaits, so
    the check-and-set cannot interleave with another handler.
    """

    def __init__(self) -> None:
        self._busy = False
        self._acquired_at: float | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        """Take the gate if it is free.

        Returns:
            True if the caller now holds the gate
        """
        if self._busy:
            return False
        self._busy = True
        self._acquired_at = time.monotonic()
        return True

    def release(self) -> None:
        """Free the gate unconditionally."""
        self._busy = False
        self._acquired_at = None

    @property
    def held_for(self) -> float:
        """Seconds since the gate was taken; 0.0 while it is free.

        A completion call that never returns keeps the gate held. The
        controller reports this value when it drops a message so a stuck
        endpoint is visible in the log.
        """
        if self._acquired_at is None:
            return 0.0
        return time.monotonic() - self._acquired_at

    def guard(self) -> GateGuard:
        """Scope that releases the (already held) gate on exit."""
        return GateGuard(self)

    def __repr__(self) -> str:
        return f"<AvailabilityGate busy={self._busy}>"


class GateGuard:
    """Release-on-exit scope for a held gate.

    ``detach()`` hands ownership to someone else (a background task whose
    completion releases the gate), after which leaving the scope does not
    release.

    Example:
        ```python
        if gate.try_acquire():
            with gate.guard() as guard:
                if not text:
                    return                  # released
                task = spawn(work())        # releases when the task is done
                guard.detach()              # not released here
        ```
    """

    def __init__(self, gate: AvailabilityGate) -> None:
        self._gate = gate
        self._attached = True

    def detach(self) -> None:
        self._attached = False

    def __enter__(self) -> GateGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._attached:
            self._gate.release()
            logger.debug("Gate released")
