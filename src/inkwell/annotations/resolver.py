"""Turns raw detector candidates into a sorted, non-overlapping decoration set."""

from __future__ import annotations

import logging
from bisect import bisect_left
from typing import Callable, Iterable

from .exclusions import ExclusionFilter, ExclusionRegions
from .models import Candidate, Category, DecorationSet, Span
from .tagging import candidate_offsets

__all__ = ["OffsetResolver", "SpanResolver"]

LOGGER = logging.getLogger(__name__)

OffsetResolver = Callable[[str, Candidate], Iterable[tuple[int, int]]]


class SpanResolver:
    """Applies exclusions, dedupes by ``(start, end)``, and rejects overlaps.

    Candidates are accepted first-come: a range already claimed by an earlier
    candidate (any category) is never decorated twice, and a span that would
    overlap an accepted span is dropped. Output is ordered by ``start`` with
    ties broken by ``end`` so shorter spans come first.
    """

    def __init__(
        self,
        exclusion_filter: ExclusionFilter | None = None,
        *,
        offset_resolver: OffsetResolver | None = None,
    ) -> None:
        self._exclusions = exclusion_filter or ExclusionFilter()
        self._offsets = offset_resolver or candidate_offsets

    @property
    def exclusion_filter(self) -> ExclusionFilter:
        return self._exclusions

    def resolve(
        self,
        text: str,
        candidates: Iterable[Candidate],
        *,
        regions: ExclusionRegions | None = None,
    ) -> DecorationSet:
        text = text or ""
        active_regions = regions if regions is not None else self._exclusions.regions(text)
        limit = len(text)
        claimed: set[tuple[int, int]] = set()
        # Accepted spans never overlap, so ordering by start also orders by end.
        accepted: list[Span] = []
        starts: list[int] = []
        fallback_offsets: dict[str, list[tuple[int, int]]] = {}
        excluded = 0
        for candidate in candidates:
            if candidate.has_reliable_offset:
                offsets = list(self._offsets(text, candidate))
            else:
                offsets = fallback_offsets.get(candidate.text)
                if offsets is None:
                    offsets = fallback_offsets[candidate.text] = list(self._offsets(text, candidate))
            for start, end in offsets:
                start = max(0, min(start, limit))
                end = max(0, min(end, limit))
                if end <= start:
                    continue
                key = (start, end)
                if key in claimed:
                    continue
                include_links = candidate.category is not Category.URL
                if active_regions.contains(start, end, include_links=include_links):
                    excluded += 1
                    continue
                index = bisect_left(starts, start)
                if index > 0 and accepted[index - 1].end > start:
                    continue
                if index < len(accepted) and accepted[index].start < end:
                    continue
                claimed.add(key)
                accepted.insert(index, Span(start, end, candidate.category))
                starts.insert(index, start)
        decorations = DecorationSet(accepted)
        LOGGER.debug("Resolved %d spans (%d excluded)", len(decorations), excluded)
        return decorations
