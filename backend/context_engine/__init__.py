"""Conversation context inference and feedback learning for the support assistant."""

__version__ = "1.0.0"
