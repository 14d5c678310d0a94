"""Inkwell: copyedit-mode annotations for a markdown note editor."""

__all__ = ["__version__"]

__version__ = "0.1.0"
