"""Core value types shared by the annotation engine and the editor shell."""

from .ranges import EditDelta, TextRange

__all__ = ["EditDelta", "TextRange"]
