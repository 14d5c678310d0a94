"""Shared pytest fixtures."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from inkwell.annotations.tagging import TaggedTerm

_WORD_PATTERN = re.compile(r"\w+")


class LexiconTagger:
    """Deterministic tagger that looks words up in a fixed lexicon."""

    def __init__(self, lexicon: Mapping[str, set[str] | frozenset[str]], *, with_offsets: bool = True) -> None:
        self._lexicon = {word.lower(): frozenset(tags) for word, tags in lexicon.items()}
        self.with_offsets = with_offsets
        self.calls: list[str] = []

    def tag(self, text: str) -> Iterator[TaggedTerm]:
        self.calls.append(text)
        for match in _WORD_PATTERN.finditer(text):
            tags = self._lexicon.get(match.group(0).lower())
            if not tags:
                continue
            if self.with_offsets:
                yield TaggedTerm(match.group(0), tags, match.start(), len(match.group(0)))
            else:
                yield TaggedTerm(match.group(0), tags)


@dataclass
class FakeTimer:
    delay: float
    callback: Callable[..., Any]
    args: tuple[Any, ...]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeLoop:
    """Records ``call_later`` requests so tests decide when timers fire."""

    timers: list[FakeTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def run_pending(self) -> int:
        fired = 0
        for timer in list(self.timers):
            if timer.cancelled:
                continue
            timer.cancelled = True
            timer.callback(*timer.args)
            fired += 1
        return fired


SAMPLE_LEXICON: dict[str, set[str]] = {
    "quick": {"Adjective"},
    "red": {"Adjective"},
    "big": {"Adjective"},
    "plain": {"Adjective"},
    "fox": {"Noun"},
    "balloon": {"Noun"},
    "world": {"Noun"},
    "runs": {"Verb"},
    "run": {"Verb"},
    "skip": {"Verb"},
    "quickly": {"Adverb"},
    "and": {"Conjunction"},
    "that": {"Conjunction"},
    "she": {"Noun", "Pronoun"},
    "this": {"Pronoun"},
    "can": {"Verb", "Modal"},
    "is": {"Verb", "Auxiliary"},
}


@pytest.fixture
def lexicon() -> dict[str, set[str]]:
    return dict(SAMPLE_LEXICON)


@pytest.fixture
def stub_tagger() -> LexiconTagger:
    return LexiconTagger(SAMPLE_LEXICON)


@pytest.fixture
def make_tagger() -> Callable[..., LexiconTagger]:
    return LexiconTagger


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()
