"""
Key-value stores holding JSON values.

Both stores enforce an optional byte quota on the serialized document and
report write failures as ``False`` instead of raising.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from recallkit.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)


def _encoded_size(document: dict[str, Any]) -> int:
    return len(json.dumps(document, ensure_ascii=False).encode("utf-8"))


class MemoryStore(KeyValueStore):
    """In-process store. Values are copied through JSON like a real store."""

    def __init__(self, max_bytes: int | None = None):
        self.max_bytes = max_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> bool:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Error writing to store ({key}): {e}")
            return False

        if self.max_bytes is not None:
            others = sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != key)
            if others + len(encoded.encode("utf-8")) > self.max_bytes:
                logger.error(f"Store quota exceeded writing {key}")
                return False

        self._data[key] = encoded
        return True

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Stores every key in a single JSON document on disk.

    Writes go to a temporary file that replaces the document atomically, so a
    failed write never leaves a truncated store behind.
    """

    def __init__(self, path: Path, max_bytes: int | None = None):
        self.path = Path(path)
        self.max_bytes = max_bytes

    def _read(self) -> dict[str, Any] | None:
        """Return the document; ``{}`` when the file is absent, None when unreadable."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading store {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.error(f"Store {self.path} is not a JSON object")
            return None
        return data

    def _write(self, document: dict[str, Any]) -> bool:
        try:
            if self.max_bytes is not None and _encoded_size(document) > self.max_bytes:
                logger.error(f"Store quota exceeded ({self.max_bytes} bytes) for {self.path}")
                return False

            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(document, fh, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing store {self.path}: {e}")
            return False
        return True

    def get(self, key: str) -> Any | None:
        document = self._read()
        if document is None:
            return None
        return document.get(key)

    def set(self, key: str, value: Any) -> bool:
        document = self._read()
        if document is None:
            logger.error(f"Refusing to overwrite unreadable store {self.path}")
            return False
        document[key] = value
        return self._write(document)

    def remove(self, key: str) -> None:
        document = self._read()
        if document is None:
            logger.error(f"Refusing to overwrite unreadable store {self.path}")
            return
        if key in document:
            del document[key]
            if not self._write(document):
                logger.error(f"Error removing {key} from store {self.path}")
