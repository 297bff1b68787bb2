"""Loaders module."""

from .files import DocumentLoader

__all__ = ["DocumentLoader"]
