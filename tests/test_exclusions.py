"""Tests for the markdown exclusion scanner."""

from __future__ import annotations

import logging

import pytest

from inkwell.annotations.exclusions import ExclusionFilter, ExclusionRegions
from inkwell.core.ranges import TextRange

DOCUMENT = "---\ntitle: Demo\n---\nBody `code` and [label](https://x.io) here.\n```\nfenced run\n```\n"


def test_regions_cover_every_reserved_construct() -> None:
    regions = ExclusionFilter().regions(DOCUMENT)

    assert regions.frontmatter == TextRange(0, 19)
    assert regions.inline_code == (TextRange(25, 31),)
    assert regions.links == (TextRange(36, 57),)
    assert regions.fenced_code == (TextRange(64, 82),)
    assert regions.frontmatter_end == 19
    assert [region.start for region in regions.all_regions()] == [0, 25, 36, 64]


def test_contains_requires_span_inside_code_or_link() -> None:
    regions = ExclusionFilter().regions(DOCUMENT)

    assert regions.contains(26, 30)
    assert regions.contains(75, 78)
    assert regions.contains(37, 42)
    assert not regions.contains(58, 62)
    assert not regions.contains(20, 30)


def test_frontmatter_excludes_spans_starting_inside_it() -> None:
    regions = ExclusionFilter().regions(DOCUMENT)

    assert regions.contains(4, 9)
    assert regions.contains(17, 24)


def test_links_can_be_ignored_for_url_targets() -> None:
    regions = ExclusionFilter().regions(DOCUMENT)

    assert regions.contains(44, 56)
    assert not regions.contains(44, 56, include_links=False)


def test_frontmatter_must_open_the_document() -> None:
    regions = ExclusionFilter().regions("intro\n---\nkey: value\n---\n")

    assert regions.frontmatter is None
    assert regions.frontmatter_end == 0


def test_is_excluded_uses_fresh_scan() -> None:
    exclusions = ExclusionFilter()

    assert exclusions.is_excluded("use `x` here", 5, 6)
    assert not exclusions.is_excluded("use `x` here", 8, 12)


class _BrokenPattern:
    def finditer(self, text: str):
        raise RuntimeError("pattern exploded")


def test_broken_pattern_contributes_no_regions(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="inkwell.annotations.exclusions")
    exclusions = ExclusionFilter(inline_code=_BrokenPattern())  # type: ignore[arg-type]

    regions = exclusions.regions(DOCUMENT)

    assert regions.inline_code == ()
    assert regions.links == (TextRange(36, 57),)
    assert "inline code" in caplog.text


def test_contains_finds_the_enclosing_region_among_many() -> None:
    inline = tuple(TextRange(start, start + 6) for start in range(900, -1, -10))
    regions = ExclusionRegions(inline_code=inline, links=(TextRange(2000, 2050),))

    assert regions.inline_code[0] == TextRange(0, 6)
    assert regions.contains(501, 505)
    assert not regions.contains(507, 509)
    assert not regions.contains(505, 512)
    assert regions.contains(2010, 2020)
    assert not regions.contains(2010, 2020, include_links=False)
