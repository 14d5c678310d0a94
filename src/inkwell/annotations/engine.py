"""Copyedit mode wiring: one analysis pass plus the handle that drives it."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Collection, Iterable

from ..core.ranges import EditDelta
from .exclusions import ExclusionFilter
from .models import DEFAULT_CATEGORIES, Candidate, Category, DecorationSet, normalize_categories
from .resolver import SpanResolver
from .scheduler import DEFAULT_DEBOUNCE_SECONDS, AnnotationScheduler, TimerLoop
from .store import AnnotationStore, DecorationListener
from .tagging import Classifier, PartOfSpeechTagger, SpacyTagger
from .urls import url_candidates

__all__ = ["AnnotationEngine", "CopyeditHandle", "attach_copyedit_mode"]

LOGGER = logging.getLogger(__name__)

TextProvider = Callable[[], str]
UrlDetector = Callable[[str, int], Iterable[Candidate]]


class AnnotationEngine:
    """Runs classifier, exclusion filter, and resolver over one text snapshot."""

    def __init__(
        self,
        classifier: Classifier,
        *,
        url_detector: UrlDetector = url_candidates,
        resolver: SpanResolver | None = None,
        exclusion_filter: ExclusionFilter | None = None,
    ) -> None:
        self._classifier = classifier
        self._url_detector = url_detector
        self._exclusions = exclusion_filter or (resolver.exclusion_filter if resolver else ExclusionFilter())
        self._resolver = resolver or SpanResolver(self._exclusions, offset_resolver=classifier.resolve_offsets)

    @classmethod
    def with_tagger(cls, tagger: PartOfSpeechTagger) -> AnnotationEngine:
        return cls(Classifier(tagger))

    @property
    def classifier(self) -> Classifier:
        return self._classifier

    def analyze(
        self,
        text: str,
        categories: Collection[Category] = DEFAULT_CATEGORIES,
        *,
        detect_urls: bool = True,
    ) -> DecorationSet:
        """Compute the decoration set for ``text``; faults degrade to fewer spans."""

        text = text or ""
        started = time.perf_counter()
        regions = self._exclusions.regions(text)
        candidates: list[Candidate] = []
        if detect_urls:
            body_offset = regions.frontmatter_end
            candidates.extend(self._url_detector(text[body_offset:], body_offset))
        candidates.extend(self._classifier.candidates(text, categories))
        decorations = self._resolver.resolve(text, candidates, regions=regions)
        LOGGER.debug(
            "Copyedit pass produced %d spans for %d chars in %.1fms",
            len(decorations),
            len(text),
            (time.perf_counter() - started) * 1000,
        )
        return decorations


class CopyeditHandle:
    """Explicit reference to one editor's copyedit mode.

    Whoever needs to force re-analysis (a preferences panel, a toolbar toggle)
    is handed this object rather than reaching for a module-level editor.
    """

    def __init__(
        self,
        text_provider: TextProvider,
        engine: AnnotationEngine,
        *,
        loop: TimerLoop | None = None,
        categories: Iterable[Any] | None = None,
        detect_urls: bool = True,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._text_provider = text_provider
        self._engine = engine
        self._store = AnnotationStore()
        self._categories = normalize_categories(categories)
        self._detect_urls = bool(detect_urls)
        self._scheduler = AnnotationScheduler(self._run_scheduled_pass, loop=loop, debounce_seconds=debounce_seconds)
        self._closed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self._store.enabled

    @property
    def decorations(self) -> DecorationSet:
        return self._store.decorations

    @property
    def enabled_categories(self) -> frozenset[Category]:
        return self._categories

    @property
    def detect_urls(self) -> bool:
        return self._detect_urls

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def scheduler(self) -> AnnotationScheduler:
        return self._scheduler

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: DecorationListener) -> None:
        self._store.add_listener(listener)

    def remove_listener(self, listener: DecorationListener) -> None:
        self._store.remove_listener(listener)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def set_enabled(self, enabled: bool) -> None:
        if self._closed:
            return
        changed = self._store.enable(enabled)
        if not changed:
            return
        if enabled:
            self._scheduler.schedule_now()
        else:
            self._scheduler.cancel()

    def toggle(self) -> bool:
        self.set_enabled(not self.enabled)
        return self.enabled

    def notify_edit(self, delta: EditDelta) -> None:
        """Track an incremental edit and debounce the next full pass."""

        if self._closed or not self._store.enabled:
            return
        self._store.apply_edit(delta)
        self._scheduler.schedule()

    def set_enabled_categories(self, categories: Iterable[Any]) -> None:
        self._categories = normalize_categories(categories)
        LOGGER.debug("Copyedit categories set to %s", sorted(c.value for c in self._categories))
        self.refresh()

    def set_detect_urls(self, detect_urls: bool) -> None:
        self._detect_urls = bool(detect_urls)
        self.refresh()

    def refresh(self) -> None:
        """Re-run analysis without waiting for the debounce window."""

        if self._closed or not self._store.enabled:
            return
        self._scheduler.schedule_now()

    def run_pass(self) -> DecorationSet:
        """Analyse the current text synchronously and apply the result."""

        if self._closed or not self._store.enabled:
            return self._store.decorations
        self._scheduler.cancel()
        return self._apply_pass(self._scheduler.generation)

    def close(self) -> None:
        """Detach from the document; pending passes are cancelled."""

        if self._closed:
            return
        self._closed = True
        self._scheduler.close()
        self._store.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _run_scheduled_pass(self, generation: int) -> None:
        if self._closed or not self._store.enabled:
            return
        self._apply_pass(generation)

    def _apply_pass(self, generation: int) -> DecorationSet:
        try:
            text = self._text_provider()
        except Exception:
            LOGGER.warning("Unable to read document text for copyedit pass", exc_info=True)
            return self._store.decorations
        try:
            decorations = self._engine.analyze(text, self._categories, detect_urls=self._detect_urls)
        except Exception:
            LOGGER.warning("Copyedit analysis failed", exc_info=True)
            decorations = DecorationSet.empty()
        self._store.replace(decorations, generation=generation)
        return self._store.decorations


def attach_copyedit_mode(
    text_provider: TextProvider,
    *,
    settings: Any | None = None,
    loop: TimerLoop | None = None,
    engine: AnnotationEngine | None = None,
    tagger: PartOfSpeechTagger | None = None,
    enabled: bool | None = None,
) -> CopyeditHandle:
    """Create the copyedit handle for one editor.

    ``settings`` may be a :class:`~inkwell.services.settings.Settings` or its
    nested ``CopyeditSettings``; defaults apply when omitted.
    """

    copyedit = getattr(settings, "copyedit", settings)
    categories = copyedit.enabled_categories() if copyedit is not None else None
    detect_urls = getattr(copyedit, "detect_urls", True)
    debounce_ms = getattr(copyedit, "debounce_ms", None)
    debounce = DEFAULT_DEBOUNCE_SECONDS if debounce_ms is None else max(0, int(debounce_ms)) / 1000.0
    if engine is None:
        model_name = getattr(copyedit, "spacy_model", None) or "en_core_web_sm"
        engine = AnnotationEngine.with_tagger(tagger or SpacyTagger(model_name))
    handle = CopyeditHandle(
        text_provider,
        engine,
        loop=loop,
        categories=categories,
        detect_urls=detect_urls,
        debounce_seconds=debounce,
    )
    if enabled is None:
        enabled = bool(getattr(settings, "copyedit_mode_enabled", False))
    if enabled:
        handle.set_enabled(True)
    return handle
