"""Deterministic hyperlink detection for plain-text and markdown documents."""

from __future__ import annotations

import logging
import re
from typing import Iterator
from urllib.parse import urlparse

from .models import Candidate, UrlMatch

__all__ = [
    "URL_PATTERN",
    "find_urls_in_text",
    "is_valid_url",
    "url_candidates",
]

LOGGER = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+")
_MARKDOWN_LINK_PATTERN = re.compile(r"!?\[(?P<label>[^\]]*)\]\((?P<url>https?://[^)\s]+)\)")
_BARE_URL_PATTERN = re.compile(r"https?://[^\s)]+")


def is_valid_url(value: str | None) -> bool:
    """Return ``True`` for a single ``http``/``https`` URL, ignoring surrounding whitespace."""

    candidate = (value or "").strip()
    if not candidate or URL_PATTERN.fullmatch(candidate) is None:
        return False
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def find_urls_in_text(text: str, offset: int = 0) -> list[UrlMatch]:
    """Locate hyperlink targets inside ``text``.

    Markdown ``[label](url)`` and ``![alt](url)`` constructs are scanned
    first and only their target is reported. Bare URLs found afterwards are
    skipped when they overlap a markdown target. ``offset`` is added to every
    position so callers can scan a slice of a larger document.
    """

    if not text:
        return []
    try:
        markdown = list(_iter_markdown_targets(text, offset))
        claimed = [(match.start, match.end) for match in markdown]
        bare = [
            match
            for match in _iter_bare_urls(text, offset)
            if not any(match.start < end and start < match.end for start, end in claimed)
        ]
    except Exception:
        LOGGER.warning("URL detection failed; no links will be highlighted", exc_info=True)
        return []
    return markdown + bare


def url_candidates(text: str, offset: int = 0) -> list[Candidate]:
    return [match.to_candidate() for match in find_urls_in_text(text, offset)]


def _iter_markdown_targets(text: str, offset: int) -> Iterator[UrlMatch]:
    for match in _MARKDOWN_LINK_PATTERN.finditer(text):
        yield UrlMatch(
            url=match.group("url"),
            start=match.start("url") + offset,
            end=match.end("url") + offset,
        )


def _iter_bare_urls(text: str, offset: int) -> Iterator[UrlMatch]:
    for match in _BARE_URL_PATTERN.finditer(text):
        yield UrlMatch(url=match.group(0), start=match.start() + offset, end=match.end() + offset)
