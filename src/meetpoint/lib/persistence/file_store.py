"""Local filesystem implementation of PersistenceGateway.

Each key is stored as ``{base_dir}/{key}.json``. Writes go to a temporary
sibling first and are renamed into place, so a crash mid-write never
leaves a truncated snapshot behind.
"""

import os
from pathlib import Path

import aiofiles

from meetpoint.lib.persistence.base import PersistenceError, StorageKey


class JsonFileStore:
    """Stores each snapshot key as a JSON file under ``base_dir``.

    Args:
        base_dir: Directory holding the snapshot files. Created on first save.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: StorageKey) -> Path:
        return self._base_dir / f"{key.value}.json"

    async def load(self, key: StorageKey) -> str | None:
        """Read the payload for ``key``.

        Returns:
            The file contents, or None if the file does not exist.

        Raises:
            PersistenceError: If the file exists but cannot be read.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(key.value, f"Failed to read {path}: {e}") from e

    async def save(self, key: StorageKey, payload: str) -> None:
        """Atomically replace the file for ``key``.

        Raises:
            PersistenceError: If the directory or file cannot be written.
        """
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(key.value, f"Failed to write {path}: {e}") from e

    async def delete(self, key: StorageKey) -> None:
        """Remove the file for ``key`` if present.

        Raises:
            PersistenceError: If the file exists but cannot be removed.
        """
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(key.value, f"Failed to delete: {e}") from e
