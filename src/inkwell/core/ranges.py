"""Structured helpers for representing text spans and the edits that move them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` range using absolute character offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def contains(self, start: int, end: int) -> bool:
        """Return ``True`` when ``[start, end)`` lies entirely inside this range."""

        return self.start <= start and end <= self.end

    def to_tuple(self) -> tuple[int, int]:
        """Return the range as a ``(start, end)`` tuple."""

        return (self.start, self.end)


@dataclass(slots=True, frozen=True)
class EditDelta:
    """A single replacement of ``[start, end)`` in the old text by ``inserted_length`` characters.

    Positions are mapped the way CodeMirror maps them through a change set:
    offsets before the edit stay put, offsets after it shift by
    :attr:`length_change`, and offsets inside a replaced region collapse onto
    its start (``assoc < 0``) or onto the end of the inserted text
    (``assoc > 0``). A position sitting exactly on a pure insertion point
    stays before the insertion unless ``assoc`` is positive.
    """

    start: int
    end: int
    inserted_length: int = 0

    def __post_init__(self) -> None:
        for label in ("start", "end", "inserted_length"):
            value = getattr(self, label)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"EditDelta {label} must be an integer")
            if value < 0:
                raise ValueError(f"EditDelta {label} cannot be negative")
        if self.end < self.start:
            raise ValueError("EditDelta end must not precede start")

    @classmethod
    def insertion(cls, position: int, length: int) -> EditDelta:
        return cls(position, position, length)

    @classmethod
    def deletion(cls, start: int, end: int) -> EditDelta:
        return cls(start, end, 0)

    @property
    def removed_length(self) -> int:
        return self.end - self.start

    @property
    def length_change(self) -> int:
        return self.inserted_length - self.removed_length

    def map_position(self, position: int, assoc: int = -1) -> int:
        """Map ``position`` in the old text onto the new text."""

        if position < self.start:
            return position
        if position > self.end:
            return position + self.length_change
        if self.removed_length == 0:
            # Pure insertion exactly at ``position``.
            return position + self.inserted_length if assoc > 0 else position
        if position == self.end:
            return self.start + self.inserted_length
        if position == self.start or assoc < 0:
            return self.start
        return self.start + self.inserted_length

    def map_range(self, start: int, end: int) -> tuple[int, int] | None:
        """Map a non-inclusive ``[start, end)`` range; ``None`` when it collapses."""

        new_start = self.map_position(start, assoc=1)
        new_end = self.map_position(end, assoc=-1)
        if new_end <= new_start:
            return None
        return (new_start, new_end)


__all__ = ["EditDelta", "TextRange"]
