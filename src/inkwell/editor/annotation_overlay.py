"""Qt binding that renders copyedit decorations inside a ``QPlainTextEdit``."""

from __future__ import annotations

import logging
import re
from bisect import bisect_left
from itertools import accumulate
from typing import Any, Mapping

from PySide6.QtCore import QObject
from PySide6.QtGui import QColor, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import QPlainTextEdit, QTextEdit

from ..annotations.engine import CopyeditHandle
from ..annotations.models import Category, DecorationSet
from ..annotations.styles import CategoryStyle, default_styles
from ..core.ranges import EditDelta
from .document_model import DocumentState

__all__ = ["AnnotationOverlay", "Utf16Index"]

LOGGER = logging.getLogger(__name__)

_ASTRAL_RE = re.compile("[\U00010000-\U0010FFFF]")


class Utf16Index:
    """Translates between Python ``str`` indices and Qt's UTF-16 document positions.

    Characters outside the Basic Multilingual Plane take two UTF-16 code units,
    so every position after one of them differs between the two schemes.
    Text without such characters uses the identity mapping.
    """

    __slots__ = ("_length", "_units")

    def __init__(self, text: str) -> None:
        self._length = len(text)
        self._units: list[int] | None = None
        if _ASTRAL_RE.search(text):
            widths = (2 if ord(char) > 0xFFFF else 1 for char in text)
            self._units = list(accumulate(widths, initial=0))

    @property
    def utf16_length(self) -> int:
        return self._units[-1] if self._units is not None else self._length

    def to_utf16(self, index: int) -> int:
        index = min(max(0, index), self._length)
        return self._units[index] if self._units is not None else index

    def to_str(self, position: int) -> int:
        position = max(0, position)
        if self._units is None:
            return min(position, self._length)
        # A position inside a surrogate pair resolves to the following character.
        return min(bisect_left(self._units, position), self._length)


class AnnotationOverlay(QObject):
    """Feeds document edits into a :class:`CopyeditHandle` and paints its spans.

    Edits arrive through ``QTextDocument.contentsChange`` in UTF-16 positions,
    are mirrored into a :class:`DocumentState`, and are forwarded to the handle
    as ``str``-indexed :class:`EditDelta` values. Every decoration change is
    rendered as a fresh list of ``QTextEdit.ExtraSelection`` objects.
    """

    def __init__(
        self,
        editor: QPlainTextEdit,
        handle: CopyeditHandle,
        *,
        document: DocumentState | None = None,
        styles: Mapping[Category, CategoryStyle] | None = None,
    ) -> None:
        super().__init__(editor)
        self._editor = editor
        self._handle = handle
        self._styles: dict[Category, CategoryStyle] = dict(styles or default_styles())
        self._document = editor.document()
        self._mirror = document if document is not None else DocumentState()
        text = editor.toPlainText()
        if self._mirror.text != text:
            self._mirror.reset(text)
        self._index = Utf16Index(text)
        self._attached = True
        self._document.contentsChange.connect(self._handle_contents_change)
        handle.add_listener(self._render)
        self._render(handle.decorations)

    @property
    def handle(self) -> CopyeditHandle:
        return self._handle

    @property
    def document(self) -> DocumentState:
        return self._mirror

    def set_styles(self, styles: Mapping[Category, CategoryStyle]) -> None:
        self._styles = dict(styles)
        self._render(self._handle.decorations)

    def detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        try:
            self._document.contentsChange.disconnect(self._handle_contents_change)
        except (RuntimeError, TypeError):  # pragma: no cover - already disconnected
            LOGGER.debug("contentsChange already disconnected", exc_info=True)
        self._handle.remove_listener(self._render)
        self._editor.setExtraSelections([])

    def selections_for(self, decorations: DecorationSet) -> list[Any]:
        limit = max(0, self._document.characterCount() - 1)
        selections: list[Any] = []
        for span in decorations:
            style = self._styles.get(span.category)
            if style is None:
                continue
            start = min(self._index.to_utf16(span.start), limit)
            end = min(self._index.to_utf16(span.end), limit)
            if end <= start:
                continue
            cursor = QTextCursor(self._document)
            cursor.setPosition(start)
            cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
            selection = QTextEdit.ExtraSelection()
            selection.cursor = cursor
            selection.format = self._format_for(style)
            selections.append(selection)
        return selections

    def _format_for(self, style: CategoryStyle) -> QTextCharFormat:
        char_format = QTextCharFormat()
        if style.foreground is not None:
            char_format.setForeground(QColor(*style.foreground))
        if style.background is not None:
            char_format.setBackground(QColor(*style.background))
        if style.underline:
            char_format.setFontUnderline(True)
        return char_format

    def _handle_contents_change(self, position: int, removed: int, added: int) -> None:
        if not self._attached:
            return
        old_text = self._mirror.text
        old_index = self._index
        new_text = self._editor.toPlainText()
        new_index = Utf16Index(new_text)
        # Qt may count the trailing block separator, so clamp both sides.
        start = old_index.to_str(position)
        end = old_index.to_str(min(position + max(0, removed), old_index.utf16_length))
        inserted_end = new_index.to_str(min(position + max(0, added), new_index.utf16_length))
        self._index = new_index
        expected_length = len(old_text) - (end - start) + (inserted_end - start)
        if inserted_end < start or expected_length != len(new_text):
            LOGGER.debug("contentsChange(%s, %s, %s) does not match the mirror; resyncing", position, removed, added)
            self._mirror.reset(new_text)
            self._handle.notify_edit(EditDelta(0, len(old_text), len(new_text)))
            return
        inserted = new_text[start:inserted_end]
        if inserted == old_text[start:end]:
            # Format-only changes are reported over unchanged text.
            return
        delta = self._mirror.apply_edit(EditDelta(start, end, len(inserted)), inserted)
        self._handle.notify_edit(delta)

    def _render(self, decorations: DecorationSet) -> None:
        if not self._attached:
            return
        try:
            self._editor.setExtraSelections(self.selections_for(decorations))
        except Exception:  # pragma: no cover - Qt defensive guard
            LOGGER.debug("Unable to render copyedit highlights", exc_info=True)
