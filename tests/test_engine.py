"""End-to-end copyedit pass and handle tests."""

from __future__ import annotations

import logging
import time

import pytest

from inkwell.annotations import AnnotationEngine, attach_copyedit_mode
from inkwell.annotations.models import Category, DEFAULT_CATEGORIES, Span
from inkwell.annotations.tagging import Classifier
from inkwell.core.ranges import EditDelta
from inkwell.editor.document_model import DocumentState
from inkwell.services.settings import CopyeditSettings, Settings

SAMPLE = "The quick fox runs quickly and `skip this` plain that"


def _keys(decorations) -> list[tuple[int, int, Category]]:
    return [(span.start, span.end, span.category) for span in decorations]


def test_analyze_highlights_each_category_outside_code(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)

    result = engine.analyze(SAMPLE)

    assert _keys(result) == [
        (4, 9, Category.ADJECTIVE),
        (10, 13, Category.NOUN),
        (14, 18, Category.VERB),
        (19, 26, Category.ADVERB),
        (27, 30, Category.CONJUNCTION),
        (43, 48, Category.ADJECTIVE),
        (49, 53, Category.CONJUNCTION),
    ]


def test_analyze_large_document_stays_fast(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)
    text = ("The quick fox runs quickly and the big world that skip. " * 600)[:30000]

    started = time.perf_counter()
    result = engine.analyze(text)
    elapsed = time.perf_counter() - started

    assert elapsed < 0.3
    assert len(result) > 3000
    assert all(left.end <= right.start for left, right in zip(result, result[1:]))


def test_analyze_is_idempotent(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)

    assert engine.analyze(SAMPLE) == engine.analyze(SAMPLE)


def test_disabled_category_never_appears(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)

    result = engine.analyze(SAMPLE, DEFAULT_CATEGORIES - {Category.ADVERB})

    assert Category.ADVERB not in result.categories()
    assert len(result) == 6


def test_urls_are_highlighted_and_toggleable(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)
    text = "fox at https://example.com"

    assert _keys(engine.analyze(text)) == [(0, 3, Category.NOUN), (7, 26, Category.URL)]
    assert _keys(engine.analyze(text, detect_urls=False)) == [(0, 3, Category.NOUN)]


def test_frontmatter_is_never_highlighted(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)
    text = "---\nfox: run\n---\nThe fox runs"

    assert _keys(engine.analyze(text)) == [(21, 24, Category.NOUN), (25, 29, Category.VERB)]


def test_spans_never_overlap(stub_tagger) -> None:
    engine = AnnotationEngine.with_tagger(stub_tagger)
    text = "A big red balloon and a quick fox at https://fox.example/run that runs"

    spans = list(engine.analyze(text))

    for left, right in zip(spans, spans[1:]):
        assert left.end <= right.start


def test_handle_runs_pass_when_enabled(stub_tagger, fake_loop) -> None:
    text = {"value": "The quick fox"}
    handle = attach_copyedit_mode(lambda: text["value"], tagger=stub_tagger, loop=fake_loop)

    assert not handle.enabled
    assert fake_loop.timers == []

    handle.set_enabled(True)
    assert [timer.delay for timer in fake_loop.live] == [0.0]
    fake_loop.run_pending()

    assert _keys(handle.decorations) == [(4, 9, Category.ADJECTIVE), (10, 13, Category.NOUN)]


def test_edits_map_spans_then_debounce_full_pass(stub_tagger, fake_loop) -> None:
    document = DocumentState(text="The quick fox")
    handle = attach_copyedit_mode(lambda: document.text, tagger=stub_tagger, loop=fake_loop, enabled=True)
    fake_loop.run_pending()
    document.add_edit_listener(lambda delta, doc: handle.notify_edit(delta))

    document.insert(0, "See ")

    assert [span.key for span in handle.decorations] == [(8, 13), (14, 17)]
    assert [timer.delay for timer in fake_loop.live] == [pytest.approx(0.3)]

    for word in (" and", " runs", " and"):
        document.insert(len(document.text), word)
    assert len(fake_loop.live) == 1
    fake_loop.run_pending()

    assert [span.category for span in handle.decorations].count(Category.CONJUNCTION) == 2
    assert stub_tagger.calls[-1] == document.text


def test_category_change_reschedules_immediately(stub_tagger, fake_loop) -> None:
    handle = attach_copyedit_mode(lambda: "The quick fox", tagger=stub_tagger, loop=fake_loop, enabled=True)
    fake_loop.run_pending()

    handle.set_enabled_categories(["nouns"])
    assert [timer.delay for timer in fake_loop.live] == [0.0]
    fake_loop.run_pending()

    assert _keys(handle.decorations) == [(10, 13, Category.NOUN)]


def test_disable_clears_and_ignores_edits(stub_tagger, fake_loop) -> None:
    handle = attach_copyedit_mode(lambda: "The quick fox", tagger=stub_tagger, loop=fake_loop, enabled=True)
    fake_loop.run_pending()

    handle.toggle()
    handle.notify_edit(EditDelta.insertion(0, 2))

    assert len(handle.decorations) == 0
    assert fake_loop.live == []


def test_close_cancels_pending_pass(stub_tagger, fake_loop) -> None:
    handle = attach_copyedit_mode(lambda: "The quick fox", tagger=stub_tagger, loop=fake_loop, enabled=True)

    handle.close()

    assert handle.closed
    assert fake_loop.run_pending() == 0
    assert stub_tagger.calls == []
    handle.set_enabled(True)
    assert fake_loop.live == []


def test_run_pass_is_synchronous(stub_tagger, fake_loop) -> None:
    handle = attach_copyedit_mode(lambda: "quick fox", tagger=stub_tagger, loop=fake_loop, enabled=True)

    result = handle.run_pass()

    assert list(result) == [Span(0, 5, Category.ADJECTIVE), Span(6, 9, Category.NOUN)]
    assert fake_loop.live == []


def test_text_provider_failure_keeps_previous_spans(
    stub_tagger, fake_loop, caplog: pytest.LogCaptureFixture
) -> None:
    state = {"fail": False}

    def _provider() -> str:
        if state["fail"]:
            raise RuntimeError("editor gone")
        return "quick fox"

    handle = attach_copyedit_mode(_provider, tagger=stub_tagger, loop=fake_loop, enabled=True)
    fake_loop.run_pending()
    state["fail"] = True
    caplog.set_level(logging.WARNING, logger="inkwell.annotations.engine")

    handle.refresh()
    fake_loop.run_pending()

    assert len(handle.decorations) == 2
    assert "Unable to read document text" in caplog.text


def test_settings_drive_handle_configuration(stub_tagger, fake_loop) -> None:
    settings = Settings(
        copyedit_mode_enabled=True,
        copyedit=CopyeditSettings(enabled_parts_of_speech=["Nouns", "bogus"], debounce_ms=500, detect_urls=False),
    )

    handle = attach_copyedit_mode(lambda: "quick fox", settings=settings, tagger=stub_tagger, loop=fake_loop)

    assert handle.enabled
    assert handle.enabled_categories == {Category.NOUN}
    assert not handle.detect_urls
    assert handle.scheduler.debounce_seconds == pytest.approx(0.5)


def test_empty_part_of_speech_list_disables_grammar(stub_tagger, fake_loop) -> None:
    settings = CopyeditSettings(enabled_parts_of_speech=[])

    handle = attach_copyedit_mode(
        lambda: "quick fox at https://example.com", settings=settings, tagger=stub_tagger, loop=fake_loop, enabled=True
    )
    fake_loop.run_pending()

    assert _keys(handle.decorations) == [(13, 32, Category.URL)]


def test_custom_url_detector_receives_body_offset(stub_tagger) -> None:
    seen: list[tuple[str, int]] = []

    def _detector(text: str, offset: int):
        seen.append((text, offset))
        return []

    engine = AnnotationEngine(Classifier(stub_tagger), url_detector=_detector)

    engine.analyze("---\na: b\n---\nfox")

    assert seen == [("\nfox", 12)]
