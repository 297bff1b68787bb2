"""Attention module."""

from .engine import Attention, IAttention

__all__ = ["Attention", "IAttention"]
