"""
Key-value persistence for DIA.

`JsonFileStore` keeps every key in one JSON object on disk and writes it
atomically (write to temp file, then rename). Values are strings.
"""
import json
import os
import tempfile
from pathlib import Path
from threading import RLock
from typing import Dict, Optional

from dia.core.logger import get_logger


class KeyValueStore:
    """String key-value storage interface"""
    
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError
    
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store (no persistence across runs)"""
    
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
    
    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)
    
    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore(KeyValueStore):
    """Key-value store persisted as a single JSON object"""
    
    def __init__(self, path: str):
        """
        Initialize file store
        
        Args:
            path: JSON file path (created on first write)
        """
        self.logger = get_logger()
        self._path = Path(path)
        self._lock = RLock()
        self._cache: Optional[Dict[str, str]] = None
    
    @property
    def path(self) -> Path:
        return self._path
    
    def _load(self) -> Dict[str, str]:
        if self._cache is not None:
            return self._cache
        data: Dict[str, str] = {}
        try:
            if self._path.exists():
                with open(self._path, "r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
                else:
                    self.logger.warning(f"[STORE] Ignoring malformed storage file: {self._path}")
        except (ValueError, RecursionError, OSError) as e:
            self.logger.warning(f"[STORE] Failed to read {self._path}: {e}")
        self._cache = data
        return data
    
    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)
    
    def set(self, key: str, value: str) -> None:
        """
        Store a value and flush the whole file
        
        Raises:
            OSError: if the file cannot be written
        """
        if not isinstance(value, str):
            raise TypeError(f"value for {key!r} must be a string")
        with self._lock:
            data = dict(self._load())
            data[key] = value
            self._write(data)
            self._cache = data
    
    def _write(self, data: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            suffix=".json",
            prefix="storage_tmp_",
            dir=str(self._path.parent)
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(temp_path, self._path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
