"""JSON file storage used by the persistence layer."""

from __future__ import annotations

import json
import os
from pathlib import Path
from threading import Lock
from typing import Any, Dict

from pydantic import TypeAdapter, ValidationError


class DeserializationError(ValueError):
    """Stored JSON does not have the shape the caller asked for."""


class JsonDataStorage:
    """Load/save arbitrary structured data as JSON files.

    The expected shape is any type pydantic can validate, e.g.
    ``dict[UUID, list[AlreadyProcessedUrl]]``. Writes go to a temporary
    sibling which then replaces the target, so a failed save leaves the
    previous file untouched.
    """

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent
        self._adapters: Dict[Any, TypeAdapter] = {}
        self._lock = Lock()

    def _adapter(self, shape: Any) -> TypeAdapter:
        with self._lock:
            if shape not in self._adapters:
                self._adapters[shape] = TypeAdapter(shape)
            return self._adapters[shape]

    def load(self, path: Path, shape: Any) -> Any:
        """Read ``path`` and validate it against ``shape``.

        Raises ``FileNotFoundError`` for a missing file, ``json.JSONDecodeError``
        for malformed JSON and :class:`DeserializationError` when the content
        is valid JSON of a different shape.
        """

        text = Path(path).read_text(encoding="utf-8")
        payload = json.loads(text)
        try:
            return self._adapter(shape).validate_python(payload)
        except ValidationError as exc:
            raise DeserializationError(
                f"Error converting value in '{path}': {exc.error_count()} validation error(s)"
            ) from exc

    def save(self, data: Any, path: Path, shape: Any) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = self._adapter(shape).dump_json(data, by_alias=True, indent=self.indent)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_bytes(payload)
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()


__all__ = ["DeserializationError", "JsonDataStorage"]
