"""Shared helpers for the Inkwell application."""
