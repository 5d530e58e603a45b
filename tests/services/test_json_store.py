import json
import threading

import pytest
from filelock import FileLock, Timeout
from pydantic import BaseModel

from arena.services.json_store import JsonStore


class Record(BaseModel):
    id: str
    value: int = 0


class TestJsonStore:

    def test_put_replaces_by_id(self, tmp_path):
        store = JsonStore(str(tmp_path / "records.json"), Record)
        store.put(Record(id="r1", value=1))
        store.put(Record(id="r2", value=2))
        store.put(Record(id="r1", value=10))

        assert [(r.id, r.value) for r in store.all()] == [("r1", 10), ("r2", 2)]
        assert store.get("r2").value == 2
        assert store.get("missing") is None

    def test_creates_missing_directories(self, tmp_path):
        path = tmp_path / "nested" / "data" / "records.json"
        JsonStore(str(path), Record)
        with open(path) as f:
            assert json.load(f) == []

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{not json")
        store = JsonStore(str(path), Record)
        assert store.all() == []

    def test_parallel_writers_keep_every_record(self, tmp_path):
        store = JsonStore(str(tmp_path / "records.json"), Record)
        threads = [threading.Thread(target=store.put, args=(Record(id=f"r{i}", value=i),)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(r.value for r in store.all()) == list(range(20))

    def test_stores_on_one_file_share_its_lock(self, tmp_path):
        # two stores on one path stand in for two worker processes
        path = str(tmp_path / "records.json")
        stores = [JsonStore(path, Record), JsonStore(path, Record)]
        threads = [
            threading.Thread(target=stores[i % 2].put, args=(Record(id=f"r{i}", value=i),))
            for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(r.value for r in stores[0].all()) == list(range(20))

    def test_waits_for_lock_held_elsewhere(self, tmp_path):
        path = str(tmp_path / "records.json")
        store = JsonStore(path, Record, lock_timeout=0.1)

        with FileLock(f"{path}.lock"):
            with pytest.raises(Timeout):
                store.put(Record(id="r1"))

        store.put(Record(id="r1"))
        assert [r.id for r in store.all()] == ["r1"]
