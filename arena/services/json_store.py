import json
import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Type, TypeVar

from filelock import FileLock
from pydantic import BaseModel

from arena.core.config import settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

class JsonStore(Generic[ModelT]):
    """
    A JSON file holding a list of records of one model type.

    Each write is a read-modify-write of the whole file. Threads of this
    process queue on the store's own lock, and other processes sharing the
    data directory (several uvicorn workers) on a lock file next to it, so two
    tournaments saving at the same time never drop each other's records.
    """

    def __init__(self, file_path: str, model: Type[ModelT], lock_timeout: Optional[float] = None):
        self.file_path = file_path
        self.model = model
        self._lock = threading.RLock()

        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        timeout = settings.STORE_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self._file_lock = FileLock(f"{self.file_path}.lock", timeout=timeout)

        with self._locked():
            if not os.path.exists(self.file_path):
                self._save_to_file([])

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock, self._file_lock:
            yield

    def _load_from_file(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.file_path):
            return []
        try:
            with open(self.file_path, "r") as f:
                content = f.read()
                if not content:
                    return []
                return json.loads(content)
        except json.JSONDecodeError:
            logger.error("Could not decode JSON from %s; treating it as empty", self.file_path)
            return []

    def _save_to_file(self, records: List[Dict[str, Any]]):
        tmp_path = f"{self.file_path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(records, f, indent=4, default=str)
        os.replace(tmp_path, self.file_path)

    def all(self) -> List[ModelT]:
        with self._locked():
            return [self.model.model_validate(record) for record in self._load_from_file()]

    def filter(self, predicate: Callable[[ModelT], bool]) -> List[ModelT]:
        return [record for record in self.all() if predicate(record)]

    def get(self, record_id: str) -> Optional[ModelT]:
        return self.find_one(lambda r: r.get("id") == record_id)

    def find_one(self, raw_predicate: Callable[[Dict[str, Any]], bool]) -> Optional[ModelT]:
        """Match on the raw dicts so only the hit is validated."""
        with self._locked():
            for record in self._load_from_file():
                if raw_predicate(record):
                    return self.model.model_validate(record)
        return None

    def put(self, item: ModelT) -> ModelT:
        self.put_many([item])
        return item

    def put_many(self, items: List[ModelT]):
        if not items:
            return
        with self._locked():
            records = self._load_from_file()
            positions = {record.get("id"): i for i, record in enumerate(records)}
            for item in items:
                data = item.model_dump(mode="json")
                if item.id in positions:
                    records[positions[item.id]] = data
                else:
                    positions[item.id] = len(records)
                    records.append(data)
            self._save_to_file(records)
