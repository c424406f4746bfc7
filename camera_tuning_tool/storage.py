from __future__ import annotations

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

Records = List[Dict[str, Any]]


class PreferenceBackend:
    def save(self, records: Records) -> None:
        raise NotImplementedError

    def load(self) -> Records:
        raise NotImplementedError


class MemoryPreferenceBackend(PreferenceBackend):
    def __init__(self, records: Optional[Records] = None):
        self._records: Records = [dict(r) for r in (records or [])]
        self.saves = 0

    def save(self, records: Records) -> None:
        self._records = json.loads(json.dumps(records))
        self.saves += 1

    def load(self) -> Records:
        return json.loads(json.dumps(self._records))


class JsonFilePreferenceBackend(PreferenceBackend):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def save(self, records: Records) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(records, indent=2, ensure_ascii=False), "utf-8")
            tmp.replace(self.path)
        finally:
            if tmp.exists():
                tmp.unlink()

    def load(self) -> Records:
        if not self.path.exists():
            return []
        data = json.loads(self.path.read_text("utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{self.path}: expected a JSON list of records")
        return data


class PersistenceWorker:
    def __init__(self, backend: PreferenceBackend):
        self.backend = backend
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="prefs-save")
        self._pending: List[Future] = []
        self._lock = threading.Lock()
        self.failures = 0

    def _save(self, records: Records) -> bool:
        try:
            self.backend.save(records)
            return True
        except Exception as e:
            self.failures += 1
            print(f"[WARN] Preference save failed: {e}")
            return False

    def submit(self, records: Records) -> Optional[Future]:
        try:
            fut = self._executor.submit(self._save, records)
        except RuntimeError as e:
            print(f"[WARN] Preference save dropped: {e}")
            return None
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(fut)
        return fut

    def flush(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
