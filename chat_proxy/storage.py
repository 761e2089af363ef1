"""File-backed persistence for the client transcript."""

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from .models import Turn

STORAGE_KEY = "chat-history"

_turns = TypeAdapter(list[Turn])


class TranscriptStore:
    """Key-to-blob store kept in a single JSON file.

    The transcript lives under :data:`STORAGE_KEY`; other keys in the file are
    left untouched.
    """

    def __init__(self, path: str | Path, key: str = STORAGE_KEY) -> None:
        self.path = Path(path).expanduser()
        self.key = key

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading chat history from {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def load(self) -> list[Turn]:
        """Return the saved transcript, oldest turn first."""
        blob = self._read().get(self.key)
        if blob is None:
            return []
        try:
            return _turns.validate_python(blob)
        except ValidationError as e:
            logger.error(f"Discarding unreadable chat history in {self.path}: {e}")
            return []

    def save(self, turns: list[Turn] | tuple[Turn, ...]) -> None:
        """Overwrite the saved transcript."""
        data = self._read()
        data[self.key] = _turns.dump_python(list(turns), mode="json")
        try:
            self._write(data)
        except OSError as e:
            logger.error(f"Error saving chat history to {self.path}: {e}")

    def clear(self) -> None:
        """Remove the saved transcript."""
        data = self._read()
        if data.pop(self.key, None) is None:
            return
        try:
            if data:
                self._write(data)
            else:
                self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error clearing chat history in {self.path}: {e}")
