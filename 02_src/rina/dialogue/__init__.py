"""Dialogue module."""

from .handler import IMessageHandler, MessageHandler

__all__ = ["IMessageHandler", "MessageHandler"]
