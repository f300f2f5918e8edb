"""
Store Module

This module persists one JSON object per entity on disk, grouped by entity
kind into directories under the data root.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

JSON_SUFFIX = ".json"


class JsonStore:
    """
    Key to JSON-object persistence over a directory tree.

    Keys may contain ``/`` (``owner/name``); each segment becomes a directory.
    Loads always return a fresh dict so callers never alias the stored record.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(exist_ok=True, parents=True)

    def path(self, kind: str, key: str) -> Path:
        return self.root / kind / f"{key}{JSON_SUFFIX}"

    def singleton_path(self, name: str) -> Path:
        return self.root / f"{name}{JSON_SUFFIX}"

    def exists(self, kind: str, key: str) -> bool:
        return self.path(kind, key).is_file()

    def load(self, kind: str, key: str) -> Dict[str, Any]:
        return self._read(self.path(kind, key))

    def save(self, kind: str, key: str, record: Dict[str, Any]) -> Path:
        return self._write(self.path(kind, key), record)

    def delete(self, kind: str, key: str) -> bool:
        """Remove a record; returns False when there was nothing to remove."""
        file_path = self.path(kind, key)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted {file_path}")
        return True

    def keys(self, kind: str) -> List[str]:
        kind_dir = self.root / kind
        if not kind_dir.is_dir():
            return []
        return sorted(
            file_path.relative_to(kind_dir).as_posix()[: -len(JSON_SUFFIX)]
            for file_path in kind_dir.rglob(f"*{JSON_SUFFIX}")
        )

    def load_singleton(self, name: str) -> Dict[str, Any]:
        return self._read(self.singleton_path(name))

    def save_singleton(self, name: str, record: Dict[str, Any]) -> Path:
        return self._write(self.singleton_path(name), record)

    def _read(self, file_path: Path) -> Dict[str, Any]:
        if not file_path.is_file():
            return {}
        with open(file_path, "r") as f:
            return json.load(f)

    def _write(self, file_path: Path, record: Dict[str, Any]) -> Path:
        file_path.parent.mkdir(exist_ok=True, parents=True)
        with open(file_path, "w") as f:
            json.dump(record, f, indent=2, sort_keys=True)
            f.write("\n")
        return file_path
