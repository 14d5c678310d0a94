"""Incremental part-of-speech and hyperlink annotations for copyedit mode."""

from .engine import AnnotationEngine, CopyeditHandle, attach_copyedit_mode
from .exclusions import ExclusionFilter, ExclusionRegions
from .models import Candidate, Category, DecorationSet, Span, UrlMatch
from .resolver import SpanResolver
from .scheduler import AnnotationScheduler
from .store import AnnotationStore
from .tagging import Classifier, SpacyTagger, TaggedTerm
from .urls import find_urls_in_text, is_valid_url

__all__ = [
    "AnnotationEngine",
    "AnnotationScheduler",
    "AnnotationStore",
    "Candidate",
    "Category",
    "Classifier",
    "CopyeditHandle",
    "DecorationSet",
    "ExclusionFilter",
    "ExclusionRegions",
    "Span",
    "SpacyTagger",
    "SpanResolver",
    "TaggedTerm",
    "UrlMatch",
    "attach_copyedit_mode",
    "find_urls_in_text",
    "is_valid_url",
]
