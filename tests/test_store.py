from __future__ import annotations

import threading
import time

import pytest

from klinik.database import Base, make_engine, make_session_factory
from klinik.store import KeyValueStore


@pytest.fixture
def kv(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'kv.db'}")
    Base.metadata.create_all(bind=engine)
    return KeyValueStore(make_session_factory(engine))


def test_set_get_and_overwrite(kv):
    assert kv.get("user:1") is None
    kv.set("user:1", {"id": "1", "name": "Budi"})
    assert kv.get("user:1") == {"id": "1", "name": "Budi"}

    kv.set("user:1", {"id": "1"})
    assert kv.get("user:1") == {"id": "1"}


def test_delete_is_idempotent(kv):
    kv.set("transaction:a", {"id": "a"})
    kv.delete("transaction:a")
    kv.delete("transaction:a")
    assert kv.get("transaction:a") is None


def test_get_by_prefix_only_returns_namespace(kv):
    kv.set("patient:1", {"userId": "1"})
    kv.set("patient:2", {"userId": "2"})
    kv.set("patients_backup", {"x": 1})
    kv.set("user:1", {"id": "1"})

    found = kv.get_by_prefix("patient:")
    assert sorted(p["userId"] for p in found) == ["1", "2"]


def test_get_by_prefix_treats_wildcards_literally(kv):
    kv.set("a%b:1", {"n": 1})
    kv.set("axb:2", {"n": 2})
    assert kv.get_by_prefix("a%b:") == [{"n": 1}]


def test_update_merges_and_returns_new_value(kv):
    kv.set("transaction:t1", {"obat": "A", "harga": 100})
    updated = kv.update("transaction:t1", lambda old: {**old, "status_pembayaran": "Lunas"})
    assert updated == {"obat": "A", "harga": 100, "status_pembayaran": "Lunas"}
    assert kv.get("transaction:t1") == updated


def test_update_missing_key_returns_none(kv):
    assert kv.update("transaction:none", lambda old: old) is None
    assert kv.get("transaction:none") is None


def test_concurrent_updates_do_not_lose_writes(kv):
    kv.set("transaction:t", {"obat": "A", "harga": 100})
    barrier = threading.Barrier(2)
    errors = []

    def slow(change):
        def fn(old):
            time.sleep(0.3)
            return {**old, **change}
        return fn

    def worker(change):
        try:
            barrier.wait()
            kv.update("transaction:t", slow(change))
        except Exception as e:
            errors.append(e)

    threads = [
        threading.Thread(target=worker, args=({"obat": "B"},)),
        threading.Thread(target=worker, args=({"status_pembayaran": "Lunas"},)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert kv.get("transaction:t") == {"obat": "B", "harga": 100, "status_pembayaran": "Lunas"}
