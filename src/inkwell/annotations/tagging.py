"""Part-of-speech classification producing copyedit candidates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Collection, Iterable, Iterator, Mapping, Protocol, Sequence

from .models import Candidate, Category

__all__ = [
    "CATEGORY_TAGS",
    "Classifier",
    "PartOfSpeechTagger",
    "SUPPRESSED_TAGS",
    "SpacyTagger",
    "TaggedTerm",
    "TaggerUnavailableError",
    "candidate_offsets",
    "find_word_occurrences",
]

LOGGER = logging.getLogger(__name__)

NOUN = "Noun"
PROPER_NOUN = "ProperNoun"
PRONOUN = "Pronoun"
VERB = "Verb"
AUXILIARY = "Auxiliary"
MODAL = "Modal"
ADJECTIVE = "Adjective"
ADVERB = "Adverb"
CONJUNCTION = "Conjunction"

CATEGORY_TAGS: Mapping[Category, str] = {
    Category.NOUN: NOUN,
    Category.VERB: VERB,
    Category.ADJECTIVE: ADJECTIVE,
    Category.ADVERB: ADVERB,
    Category.CONJUNCTION: CONJUNCTION,
}

# Matches carrying any of these tags are dropped for the keyed category.
SUPPRESSED_TAGS: Mapping[Category, frozenset[str]] = {
    Category.NOUN: frozenset({PRONOUN}),
    Category.VERB: frozenset({AUXILIARY, MODAL}),
}

_UNIVERSAL_POS_TAGS: Mapping[str, frozenset[str]] = {
    "NOUN": frozenset({NOUN}),
    "PROPN": frozenset({NOUN, PROPER_NOUN}),
    "PRON": frozenset({PRONOUN}),
    "VERB": frozenset({VERB}),
    "AUX": frozenset({VERB, AUXILIARY}),
    "ADJ": frozenset({ADJECTIVE}),
    "ADV": frozenset({ADVERB}),
    "CCONJ": frozenset({CONJUNCTION}),
    "SCONJ": frozenset({CONJUNCTION}),
}
_MODAL_FINE_TAG = "MD"


class TaggerUnavailableError(RuntimeError):
    """Raised when the underlying language pipeline cannot be loaded."""


@dataclass(slots=True, frozen=True)
class TaggedTerm:
    """One token reported by a tagger, with optional offsets into the source text."""

    text: str
    tags: frozenset[str]
    start: int | None = None
    length: int | None = None

    @property
    def end(self) -> int | None:
        if self.start is None or self.length is None:
            return None
        return self.start + self.length

    @property
    def has_offset(self) -> bool:
        return self.start is not None and self.length is not None and self.start >= 0 and self.length > 0


class PartOfSpeechTagger(Protocol):
    """Callable surface the classifier needs from a tagging backend."""

    def tag(self, text: str) -> Iterable[TaggedTerm]:
        ...


class SpacyTagger:
    """Tagger backed by a spaCy pipeline, loaded lazily on first use."""

    def __init__(
        self,
        model_name: str = "en_core_web_sm",
        *,
        nlp: Callable[[str], Any] | None = None,
    ) -> None:
        self._model_name = model_name
        self._nlp = nlp
        self._load_error: Exception | None = None

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def nlp(self) -> Callable[[str], Any]:
        if self._nlp is None:
            self._nlp = self._load()
        return self._nlp

    def tag(self, text: str) -> Iterator[TaggedTerm]:
        doc = self.nlp(text)
        for token in doc:
            if token.is_space or token.is_punct:
                continue
            tags = tags_for_token(token.pos_, token.tag_)
            if not tags:
                continue
            yield TaggedTerm(text=token.text, tags=tags, start=token.idx, length=len(token.text))

    def _load(self) -> Callable[[str], Any]:
        if self._load_error is not None:
            raise TaggerUnavailableError(f"spaCy model '{self._model_name}' is unavailable") from self._load_error
        import spacy

        try:
            nlp = spacy.load(self._model_name)
        except OSError as exc:
            self._load_error = exc
            LOGGER.warning(
                "spaCy model '%s' could not be loaded; copyedit highlighting is disabled. "
                "Install it with `python -m spacy download %s`.",
                self._model_name,
                self._model_name,
            )
            raise TaggerUnavailableError(f"spaCy model '{self._model_name}' is unavailable") from exc
        LOGGER.debug("Loaded spaCy pipeline %s (%s)", self._model_name, ", ".join(nlp.pipe_names))
        return nlp


def tags_for_token(pos: str, fine_tag: str = "") -> frozenset[str]:
    """Translate universal POS (plus the fine-grained tag) into the classifier vocabulary."""

    tags = _UNIVERSAL_POS_TAGS.get((pos or "").upper(), frozenset())
    if fine_tag == _MODAL_FINE_TAG:
        tags = tags | {VERB, MODAL}
    return tags


def candidate_offsets(text: str, candidate: Candidate) -> list[tuple[int, int]]:
    if candidate.has_reliable_offset:
        start = int(candidate.start)  # type: ignore[arg-type]
        return [(start, start + int(candidate.length))]  # type: ignore[arg-type]
    return find_word_occurrences(text, candidate.text)


def find_word_occurrences(text: str, needle: str) -> list[tuple[int, int]]:
    """Return every occurrence of ``needle`` not embedded inside a longer word."""

    if not text or not needle or not needle.strip():
        return []
    pattern = re.compile(rf"(?<!\w){re.escape(needle)}(?!\w)")
    return [(match.start(), match.end()) for match in pattern.finditer(text)]


class Classifier:
    """Runs one tagging pass and emits candidates per enabled category."""

    def __init__(self, tagger: PartOfSpeechTagger) -> None:
        self._tagger = tagger

    @property
    def tagger(self) -> PartOfSpeechTagger:
        return self._tagger

    def candidates(self, text: str, categories: Collection[Category]) -> Iterator[Candidate]:
        """Yield candidates in category order; tagger faults yield nothing."""

        enabled = [category for category in Category.grammatical() if category in categories]
        if not text or not enabled:
            return
        try:
            terms = list(self._tagger.tag(text))
        except TaggerUnavailableError:
            LOGGER.debug("Tagger unavailable; skipping part-of-speech pass", exc_info=True)
            return
        except Exception:
            LOGGER.warning("Part-of-speech tagging failed; skipping this pass", exc_info=True)
            return
        for category in enabled:
            try:
                matches = list(self._match(text, terms, category))
            except Exception:
                LOGGER.warning("Matching %s terms failed", category.value, exc_info=True)
                continue
            LOGGER.debug("Found %d %s matches", len(matches), category.value)
            yield from matches

    def resolve_offsets(self, text: str, candidate: Candidate) -> list[tuple[int, int]]:
        """Return ``(start, end)`` pairs for ``candidate``.

        Reliable tagger offsets are used as-is. Otherwise every word-boundary
        occurrence of the candidate text is returned.
        """

        return candidate_offsets(text, candidate)

    def _match(self, text: str, terms: Sequence[TaggedTerm], category: Category) -> Iterator[Candidate]:
        wanted = CATEGORY_TAGS[category]
        suppressed = SUPPRESSED_TAGS.get(category, frozenset())
        phrase: list[TaggedTerm] = []
        for term in terms:
            matches = wanted in term.tags and not (term.tags & suppressed)
            if not matches:
                if phrase:
                    yield _phrase_candidate(text, phrase, category)
                    phrase = []
                continue
            if not term.text or not term.text.strip():
                continue
            if not term.has_offset:
                if phrase:
                    yield _phrase_candidate(text, phrase, category)
                    phrase = []
                yield Candidate(text=term.text, category=category)
                continue
            if phrase and not _joins(text, phrase[-1], term):
                yield _phrase_candidate(text, phrase, category)
                phrase = []
            phrase.append(term)
        if phrase:
            yield _phrase_candidate(text, phrase, category)


def _joins(text: str, previous: TaggedTerm, term: TaggedTerm) -> bool:
    gap_start = previous.end
    gap_end = term.start
    if gap_start is None or gap_end is None or gap_end < gap_start:
        return False
    gap = text[gap_start:gap_end]
    return gap == "" or (gap.isspace() and "\n" not in gap)


def _phrase_candidate(text: str, phrase: Sequence[TaggedTerm], category: Category) -> Candidate:
    start = phrase[0].start
    end = phrase[-1].end
    if start is None or end is None:
        raise ValueError("Phrase terms must carry character offsets")
    return Candidate(text=text[start:end], category=category, start=start, length=end - start)
