"""
Small durable key-value file.

The whole file is rewritten on every change (temp file + ``os.replace``), so
readers in any process see either the old or the new content, never a mix.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


class PreferencesFile:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> Optional[Any]:
        """Value stored under ``key``; raises ``ValueError`` if the file is not valid JSON."""
        with self._lock:
            return self._read().get(key)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            try:
                data = self._read()
            except ValueError:
                log.warning(f"Overwriting unreadable preferences file {self.path}")
                data = {}
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            try:
                data = self._read()
            except ValueError:
                log.warning(f"Resetting unreadable preferences file {self.path}")
                self._write({})
                return
            if key in data:
                del data[key]
                self._write(data)
