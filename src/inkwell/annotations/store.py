"""Holds the copyedit mode flag and the decoration set currently on screen."""

from __future__ import annotations

import logging
from typing import Callable

from ..core.ranges import EditDelta
from .models import DecorationSet

__all__ = ["AnnotationStore", "DecorationListener"]

LOGGER = logging.getLogger(__name__)

DecorationListener = Callable[[DecorationSet], None]


class AnnotationStore:
    """Two-field state machine: ``enabled`` plus the current :class:`DecorationSet`.

    Results from a full analysis pass always replace the previous set; they
    are never merged. Between passes, :meth:`apply_edit` maps spans through
    incremental edits so highlights keep tracking the text.
    """

    def __init__(self) -> None:
        self._enabled = False
        self._decorations = DecorationSet.empty()
        self._generation = 0
        self._listeners: list[DecorationListener] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def decorations(self) -> DecorationSet:
        return self._decorations

    @property
    def generation(self) -> int:
        """Generation of the most recently applied analysis pass."""

        return self._generation

    def add_listener(self, listener: DecorationListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: DecorationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def enable(self, enabled: bool) -> bool:
        """Switch the mode; returns ``True`` when the flag actually changed."""

        enabled = bool(enabled)
        if enabled == self._enabled:
            return False
        self._enabled = enabled
        LOGGER.debug("Copyedit mode %s", "enabled" if enabled else "disabled")
        if not enabled:
            self._set(DecorationSet.empty())
        return True

    def apply_edit(self, delta: EditDelta) -> DecorationSet:
        if not self._enabled or not self._decorations:
            return self._decorations
        self._set(self._decorations.map(delta))
        return self._decorations

    def replace(self, decorations: DecorationSet, *, generation: int | None = None) -> bool:
        """Swap in ``decorations`` from a completed pass.

        Returns ``False`` when ignored: the mode is off, or ``generation`` is
        older than a pass that already landed.
        """

        if not self._enabled:
            return False
        if generation is not None:
            if generation < self._generation:
                LOGGER.debug(
                    "Discarding stale analysis result (generation=%s, current=%s)",
                    generation,
                    self._generation,
                )
                return False
            self._generation = generation
        self._set(decorations)
        return True

    def clear(self) -> None:
        self._set(DecorationSet.empty())

    def _set(self, decorations: DecorationSet) -> None:
        changed = decorations != self._decorations
        self._decorations = decorations
        if changed:
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._decorations)
            except Exception:  # pragma: no cover - defensive guard
                LOGGER.debug("Decoration listener failed", exc_info=True)
