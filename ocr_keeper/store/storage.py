"""Durable key-value storage backed by JSON files.

Each key maps to one file; writes go to a temporary sibling which then
replaces the target, so a reader sees either the old or the new value.
"""

import os
import re
from pathlib import Path

from ocr_keeper.exceptions import StorageError
from ocr_keeper.utils.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class JsonFileStorage:
    """Stores whole values under fixed keys in a directory.

    Args:
        directory: Directory holding one ``<key>.json`` file per key.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def read(self, key: str) -> str | None:
        """Return the last value written under ``key``, or ``None`` if absent."""
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unreadable storage file %s: %s", path, exc)
            return None

    def write(self, key: str, value: str) -> None:
        """Replace the value stored under ``key``.

        Raises:
            StorageError: If the directory or file cannot be written.
        """
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(value), path)

