"""Reserved markdown regions where copyedit highlighting never applies."""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Pattern

from ..core.ranges import TextRange

__all__ = ["ExclusionFilter", "ExclusionRegions"]

LOGGER = logging.getLogger(__name__)

_FENCED_CODE_PATTERN = re.compile(r"```[\s\S]*?```")
_INLINE_CODE_PATTERN = re.compile(r"`[^`\n]+`")
_FRONTMATTER_PATTERN = re.compile(r"---[\s\S]*?---")
_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\([^)]+\)")


@dataclass(slots=True, frozen=True)
class ExclusionRegions:
    """Reserved ranges computed from one snapshot of the raw document text."""

    fenced_code: tuple[TextRange, ...] = ()
    inline_code: tuple[TextRange, ...] = ()
    links: tuple[TextRange, ...] = ()
    frontmatter: TextRange | None = None
    _starts: tuple[tuple[int, ...], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in ("fenced_code", "inline_code", "links"):
            object.__setattr__(self, name, tuple(sorted(getattr(self, name), key=TextRange.to_tuple)))
        starts = tuple(tuple(region.start for region in group) for group in self._groups(include_links=True))
        object.__setattr__(self, "_starts", starts)

    @property
    def frontmatter_end(self) -> int:
        return self.frontmatter.end if self.frontmatter is not None else 0

    def contains(self, start: int, end: int, *, include_links: bool = True) -> bool:
        """Return ``True`` when ``[start, end)`` must not be highlighted.

        Code and link regions only exclude spans lying entirely inside them.
        The front-matter excludes any span that starts before its end.
        """

        if self.frontmatter is not None and start < self.frontmatter.end:
            return True
        for group, starts in zip(self._groups(include_links=include_links), self._starts):
            # Matches of one pattern never overlap, so only the nearest region to the left can contain the span.
            index = bisect_right(starts, start) - 1
            if index >= 0 and group[index].contains(start, end):
                return True
        return False

    def all_regions(self) -> tuple[TextRange, ...]:
        regions = [region for group in self._groups(include_links=True) for region in group]
        if self.frontmatter is not None:
            regions.append(self.frontmatter)
        return tuple(sorted(regions, key=TextRange.to_tuple))

    def _groups(self, *, include_links: bool) -> tuple[tuple[TextRange, ...], ...]:
        if include_links:
            return (self.fenced_code, self.inline_code, self.links)
        return (self.fenced_code, self.inline_code)


class ExclusionFilter:
    """Scans raw text for fenced code, inline code, front-matter, and link markup."""

    def __init__(
        self,
        *,
        fenced_code: Pattern[str] = _FENCED_CODE_PATTERN,
        inline_code: Pattern[str] = _INLINE_CODE_PATTERN,
        frontmatter: Pattern[str] = _FRONTMATTER_PATTERN,
        links: Pattern[str] = _LINK_PATTERN,
    ) -> None:
        self._fenced_code = fenced_code
        self._inline_code = inline_code
        self._frontmatter = frontmatter
        self._links = links

    def regions(self, text: str) -> ExclusionRegions:
        text = text or ""
        return ExclusionRegions(
            fenced_code=self._scan("fenced code", self._fenced_code, text),
            inline_code=self._scan("inline code", self._inline_code, text),
            links=self._scan("link", self._links, text),
            frontmatter=self._scan_frontmatter(text),
        )

    def is_excluded(self, text: str, start: int, end: int) -> bool:
        return self.regions(text).contains(start, end)

    def _scan(self, label: str, pattern: Pattern[str], text: str) -> tuple[TextRange, ...]:
        try:
            return tuple(TextRange(match.start(), match.end()) for match in pattern.finditer(text))
        except Exception:
            LOGGER.debug("Skipping %s exclusions for this pass", label, exc_info=True)
            return ()

    def _scan_frontmatter(self, text: str) -> TextRange | None:
        try:
            match = self._frontmatter.match(text)
        except Exception:
            LOGGER.debug("Skipping front-matter exclusion for this pass", exc_info=True)
            return None
        if match is None:
            return None
        return TextRange(match.start(), match.end())
