"""Value types describing annotation candidates, spans, and decoration sets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence

from ..core.ranges import EditDelta

LOGGER = logging.getLogger(__name__)


class Category(str, Enum):
    """Classification applied to a highlighted span."""

    NOUN = "noun"
    VERB = "verb"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    CONJUNCTION = "conjunction"
    URL = "url"

    @classmethod
    def grammatical(cls) -> tuple[Category, ...]:
        return (cls.NOUN, cls.VERB, cls.ADJECTIVE, cls.ADVERB, cls.CONJUNCTION)

    @property
    def setting_name(self) -> str:
        """Plural spelling used by the preferences payload (``nouns``, ``verbs``...)."""

        return f"{self.value}s"

    @property
    def order(self) -> int:
        return _CATEGORY_ORDER[self]

    @classmethod
    def from_setting(cls, value: Any) -> Category:
        """Resolve singular or plural names, ignoring case and whitespace."""

        if isinstance(value, Category):
            return value
        key = str(value or "").strip().lower()
        if not key:
            raise ValueError("Category name cannot be empty")
        for member in cls:
            if key in (member.value, member.setting_name):
                return member
        raise ValueError(f"Unknown category '{value}'")


_CATEGORY_ORDER = {member: index for index, member in enumerate(Category)}
DEFAULT_CATEGORIES: frozenset[Category] = frozenset(Category.grammatical())


def normalize_categories(values: Iterable[Any] | None) -> frozenset[Category]:
    """Coerce configuration values into grammatical categories, skipping unknown names."""

    if values is None:
        return DEFAULT_CATEGORIES
    resolved: set[Category] = set()
    for value in values:
        try:
            category = Category.from_setting(value)
        except ValueError:
            LOGGER.warning("Ignoring unknown part of speech %r", value)
            continue
        if category is Category.URL:
            continue
        resolved.add(category)
    return frozenset(resolved)


@dataclass(slots=True, frozen=True)
class Candidate:
    """Raw match emitted by a detector before exclusion and dedupe."""

    text: str
    category: Category
    start: int | None = None
    length: int | None = None

    @property
    def has_reliable_offset(self) -> bool:
        return (
            self.start is not None
            and self.length is not None
            and self.start >= 0
            and self.length > 0
        )


@dataclass(slots=True, frozen=True)
class UrlMatch:
    """A detected hyperlink target with absolute offsets."""

    url: str
    start: int
    end: int

    def as_dict(self) -> dict[str, Any]:
        return {"url": self.url, "from": self.start, "to": self.end}

    def to_candidate(self) -> Candidate:
        return Candidate(
            text=self.url,
            category=Category.URL,
            start=self.start,
            length=self.end - self.start,
        )


@dataclass(slots=True, frozen=True)
class Span:
    """Half-open ``[start, end)`` highlight tagged with one category."""

    start: int
    end: int
    category: Category

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("Span start cannot be negative")
        if self.end <= self.start:
            raise ValueError(f"Span end ({self.end}) must be greater than start ({self.start})")

    @property
    def key(self) -> tuple[int, int]:
        return (self.start, self.end)

    @property
    def length(self) -> int:
        return self.end - self.start

    def sort_key(self) -> tuple[int, int, int]:
        return (self.start, self.end, self.category.order)

    def overlaps(self, other: Span) -> bool:
        return self.start < other.end and other.start < self.end

    def map(self, delta: EditDelta) -> Span | None:
        mapped = delta.map_range(self.start, self.end)
        if mapped is None:
            return None
        return Span(mapped[0], mapped[1], self.category)

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.start, "to": self.end, "category": self.category.value}


class DecorationSet(Sequence[Span]):
    """Immutable, sorted collection of spans handed to the rendering layer."""

    __slots__ = ("_spans",)

    def __init__(self, spans: Iterable[Span] = ()) -> None:
        self._spans: tuple[Span, ...] = tuple(sorted(spans, key=Span.sort_key))

    @classmethod
    def empty(cls) -> DecorationSet:
        return _EMPTY

    @classmethod
    def from_spans(cls, spans: Iterable[Span]) -> DecorationSet:
        return cls(spans)

    def __len__(self) -> int:
        return len(self._spans)

    def __getitem__(self, index):  # type: ignore[override]
        return self._spans[index]

    def __iter__(self) -> Iterator[Span]:
        return iter(self._spans)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DecorationSet):
            return self._spans == other._spans
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._spans)

    def __repr__(self) -> str:
        return f"DecorationSet({list(self._spans)!r})"

    @property
    def spans(self) -> tuple[Span, ...]:
        return self._spans

    def by_category(self, category: Category) -> tuple[Span, ...]:
        return tuple(span for span in self._spans if span.category is category)

    def categories(self) -> frozenset[Category]:
        return frozenset(span.category for span in self._spans)

    def map(self, delta: EditDelta) -> DecorationSet:
        """Return the set shifted through ``delta``; collapsed spans are dropped."""

        mapped: list[Span] = []
        for span in self._spans:
            moved = span.map(delta)
            if moved is not None:
                mapped.append(moved)
        return DecorationSet(mapped)

    def to_list(self) -> list[dict[str, Any]]:
        return [span.to_dict() for span in self._spans]


_EMPTY = DecorationSet()


__all__ = [
    "Candidate",
    "Category",
    "DEFAULT_CATEGORIES",
    "DecorationSet",
    "Span",
    "UrlMatch",
    "normalize_categories",
]
