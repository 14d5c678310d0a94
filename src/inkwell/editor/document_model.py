"""Plain-text document mirror observed by copyedit mode."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..core.ranges import EditDelta

LOGGER = logging.getLogger(__name__)

EditListener = Callable[[EditDelta, "DocumentState"], None]


@dataclass(slots=True)
class DocumentState:
    """Mutable text buffer with a monotonically increasing edit sequence."""

    text: str = ""
    version_id: int = 1
    _edit_listeners: list[EditListener] = field(default_factory=list, repr=False, compare=False)

    def add_edit_listener(self, listener: EditListener) -> None:
        self._edit_listeners.append(listener)

    def remove_edit_listener(self, listener: EditListener) -> None:
        if listener in self._edit_listeners:
            self._edit_listeners.remove(listener)

    def apply_edit(self, delta: EditDelta, inserted_text: str) -> EditDelta:
        """Apply ``delta`` using ``inserted_text`` as the replacement and notify listeners."""

        length = len(self.text)
        if delta.end > length:
            raise ValueError(f"Range ({delta.start}, {delta.end}) is outside the document (length={length})")
        if len(inserted_text) != delta.inserted_length:
            raise ValueError(
                f"Inserted text has length {len(inserted_text)}, expected {delta.inserted_length}"
            )
        self.text = self.text[: delta.start] + inserted_text + self.text[delta.end :]
        self.version_id += 1
        for listener in list(self._edit_listeners):
            try:
                listener(delta, self)
            except Exception:  # pragma: no cover - listeners should not break editing
                LOGGER.exception("Document edit listener failed")
        return delta

    def replace_range(self, start: int, end: int, replacement: str) -> EditDelta:
        """Replace ``[start, end)`` with ``replacement`` and report the edit delta."""

        length = len(self.text)
        if not 0 <= start <= end <= length:
            raise ValueError(f"Range ({start}, {end}) is outside the document (length={length})")
        return self.apply_edit(EditDelta(start, end, len(replacement)), replacement)

    def insert(self, position: int, text: str) -> EditDelta:
        return self.replace_range(position, position, text)

    def delete(self, start: int, end: int) -> EditDelta:
        return self.replace_range(start, end, "")

    def reset(self, text: str) -> None:
        """Replace the whole buffer without reporting a delta; used to resynchronise."""

        self.text = text
        self.version_id += 1
