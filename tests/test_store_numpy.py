# tests/test_store_numpy.py
import json

import numpy as np
import pytest

from laila.adapters.store_numpy import NumpyStore
from laila.core.errors import StoreError
from laila.core.models import Memory


def _mem(text, vec, **meta):
    return Memory.new(text, vec, **meta)


def test_search_cosine_top1(tmp_path):
    store = NumpyStore(str(tmp_path))
    assert store.insert(_mem("unit v1", [1, 0, 0, 0]))
    assert store.insert(_mem("unit v2", [0.9, 0.1, 0, 0]))
    assert store.insert(_mem("unit v3", [0, 1, 0, 0], source="chat"))

    hits = store.query_similar([1, 0, 0, 0], top_k=2)
    assert len(hits) == 2
    assert hits[0].content == "unit v1"
    assert hits[0].score >= hits[1].score

    # a fresh instance reads the same files back
    again = NumpyStore(str(tmp_path)).query_similar([0, 1, 0, 0], top_k=1)
    assert again[0].content == "unit v3"
    assert again[0].source == "chat"


def test_empty_store_returns_nothing(tmp_path):
    store = NumpyStore(str(tmp_path / "missing"))
    assert store.query_similar([1.0, 0.0], top_k=4) == []
    assert store.size() == 0


def test_duplicate_ids_are_not_inserted_twice(tmp_path):
    store = NumpyStore(str(tmp_path))
    m = _mem("uma vez", [1, 0])
    assert store.insert(m) and store.insert(m)
    assert store.size() == 1
    with open(store.meta_path, encoding="utf-8") as f:
        rows = [json.loads(line) for line in f]
    assert len(rows) == 1 and rows[0]["id"] == m.id and "embedding" not in rows[0]


def test_dimension_mismatch(tmp_path):
    store = NumpyStore(str(tmp_path))
    store.insert(_mem("a", [1, 0, 0]))
    assert store.insert(_mem("b", [1, 0])) is False
    with pytest.raises(StoreError):
        store.query_similar([1, 0], top_k=1)


def test_corrupt_index_raises_store_error(tmp_path):
    np.save(tmp_path / "vectors.npy", np.zeros((2, 3), dtype=np.float32))
    (tmp_path / "meta.jsonl").write_text(json.dumps({"content": "só uma"}) + "\n", encoding="utf-8")
    with pytest.raises(StoreError):
        NumpyStore(str(tmp_path)).query_similar([1, 0, 0])


def test_audit_log_appends(tmp_path):
    store = NumpyStore(str(tmp_path))
    assert store.log_exchange("oi", "olá", "reflective")
    assert store.log_exchange("tchau", "até logo", "reflective")
    lines = (tmp_path / "audit.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(x)["reply"] for x in lines] == ["olá", "até logo"]


def test_seed_tool_populates_store(tmp_path):
    from seed_memories import SAMPLES, main, seed

    store = seed(str(tmp_path), dim=8)
    assert store.size() == len(SAMPLES)
    assert main(["--out-dir", str(tmp_path / "cli"), "--dim", "4"]) == 0
    assert NumpyStore(str(tmp_path / "cli")).query_similar([1, 0, 0, 0], top_k=10)


def test_failed_meta_write_keeps_files_consistent(tmp_path, monkeypatch):
    import builtins
    import laila.adapters.store_numpy as store_mod

    store = NumpyStore(str(tmp_path))
    assert store.insert(_mem("primeira", [1, 0]))

    real_open = builtins.open

    def flaky_open(path, *args, **kwargs):
        if str(path).endswith("meta.jsonl.tmp"):
            raise OSError("disk full")
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr(store_mod, "open", flaky_open, raising=False)
    assert store.insert(_mem("segunda", [0, 1])) is False
    monkeypatch.undo()

    assert not (tmp_path / "vectors.npy.tmp").exists()
    fresh = NumpyStore(str(tmp_path))
    hits = fresh.query_similar([1, 0], top_k=4)
    assert [h.content for h in hits] == ["primeira"]
    assert fresh.insert(_mem("terceira", [0, 1]))
    assert NumpyStore(str(tmp_path)).size() == 2


def test_blank_meta_line_is_an_empty_row(tmp_path):
    np.save(tmp_path / "vectors.npy", np.eye(2, dtype=np.float32))
    (tmp_path / "meta.jsonl").write_text(json.dumps({"content": "primeira"}) + "\n\n", encoding="utf-8")
    hits = NumpyStore(str(tmp_path)).query_similar([0, 1], top_k=1)
    assert hits[0].content == ""
