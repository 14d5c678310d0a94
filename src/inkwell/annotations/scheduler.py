"""Debounced, cancellable single-slot scheduling of analysis passes."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Protocol

__all__ = ["AnnotationScheduler", "DEFAULT_DEBOUNCE_SECONDS", "TimerLoop"]

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

PassCallback = Callable[[int], Any]


class _TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerLoop(Protocol):
    """The slice of :class:`asyncio.AbstractEventLoop` the scheduler relies on."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _TimerHandle:
        ...


class AnnotationScheduler:
    """Decides when the analysis callback runs.

    At most one timer is outstanding. Every trigger cancels the pending timer
    and arms a new one, so a burst of edits inside the debounce window
    collapses into a single pass fired from the last edit. Each armed timer
    carries a generation number which is handed to the callback; the store
    uses it to discard results older than one already applied.
    """

    def __init__(
        self,
        callback: PassCallback,
        *,
        loop: TimerLoop | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds cannot be negative")
        self._callback = callback
        self._loop = loop
        self._debounce = float(debounce_seconds)
        self._handle: _TimerHandle | None = None
        self._generation = 0
        self._armed_generation: int | None = None
        self._runs = 0
        self._closed = False

    @property
    def debounce_seconds(self) -> float:
        return self._debounce

    @debounce_seconds.setter
    def debounce_seconds(self, value: float) -> None:
        if value < 0:
            raise ValueError("debounce_seconds cannot be negative")
        self._debounce = float(value)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def runs(self) -> int:
        """Number of passes the scheduler has fired."""

        return self._runs

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(self) -> bool:
        """(Re)arm the debounced timer.

        Returns ``False`` once the scheduler is closed, or when no loop was
        supplied and none is running.
        """

        return self._arm(self._debounce)

    def schedule_now(self) -> bool:
        """Replace any pending timer with one that fires on the next loop iteration."""

        return self._arm(0.0)

    def cancel(self) -> None:
        handle = self._handle
        self._handle = None
        self._armed_generation = None
        if handle is not None:
            handle.cancel()

    def close(self) -> None:
        """Cancel outstanding work; nothing fires after this returns."""

        self.cancel()
        self._closed = True

    def _arm(self, delay: float) -> bool:
        if self._closed:
            return False
        self.cancel()
        loop = self._resolve_loop()
        if loop is None:
            LOGGER.warning("No running event loop; copyedit analysis was not scheduled")
            return False
        self._generation += 1
        generation = self._generation
        self._armed_generation = generation
        self._handle = loop.call_later(delay, self._fire, generation)
        LOGGER.debug("Analysis scheduled in %.0fms (generation=%s)", delay * 1000, generation)
        return True

    def _fire(self, generation: int) -> None:
        if self._closed or generation != self._armed_generation:
            return
        self._handle = None
        self._armed_generation = None
        self._runs += 1
        try:
            self._callback(generation)
        except Exception:
            LOGGER.warning("Annotation pass failed", exc_info=True)

    def _resolve_loop(self) -> TimerLoop | None:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                return None
        return self._loop
