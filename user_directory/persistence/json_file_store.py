import json
import os
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from user_directory.errors import PersistenceError


# ==============================================
# JsonFileStore
# ==============================================
#
# PURPOSE:
#   Key-value persistence on the local filesystem so that the
#   store's snapshot survives process restarts.
#
# CONTRACT:
#   - save(key, value) never raises. Serialization or disk
#     failures are logged and the durable copy just stays stale.
#   - load(key) never raises. Missing file, unreadable file or
#     invalid JSON all come back as None.
#
# FILE STRUCTURE:
# ---------------
#   data/
#   └── <key>.json   → JSON value saved under <key>
#
class JsonFileStore:
    """
    File-backed key-value store, one JSON file per key.
    """

    def __init__(self, storage_dir: str = "data/"):
        """
        Initialize the file store.

        Args:
            storage_dir: Directory to store JSON files in
        """
        self.storage_dir = Path(storage_dir)

        # Create directory if it doesn't exist
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.storage_dir / f"{key}.json"

    def save(self, key: str, value: Any) -> None:
        """
        Serialize value to JSON and write it under key.

        Args:
            key: Storage key
            value: JSON-serializable value
        """
        try:
            self._write(key, value)
        except (PersistenceError, OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving state under '{key}': {e}")

    def load(self, key: str) -> Optional[Any]:
        """
        Load the JSON value stored under key.

        Returns:
            The deserialized value, or None if absent or unreadable
        """
        try:
            path = self.path_for(key)
            if not path.exists():
                logger.debug(f"No stored state found at {path}")
                return None
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Error loading state under '{key}': {e}")
            return None

    def delete(self, key: str) -> bool:
        """
        Delete the file stored under key.

        Returns:
            True if a file was removed
        """
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted {path}")
        return True

    def close(self) -> None:
        pass

    def _write(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        serialized = json.dumps(value, indent=2)

        # Write to a temp file first so a crash never leaves half a snapshot
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(serialized)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e

        logger.debug(f"Saved state under '{key}' to {path}")
