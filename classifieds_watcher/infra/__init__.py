"""Infra layer utilities (file storage)."""

from .storage import DeserializationError, JsonDataStorage

__all__ = ["DeserializationError", "JsonDataStorage"]
