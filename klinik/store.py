import logging
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session, sessionmaker

from .models import KVEntry

log = logging.getLogger("klinik.store")

Document = Dict[str, Any]


class KeyValueStore:
    """
    Penyimpanan dokumen JSON dengan key string, di atas satu tabel `kv_store`.

    - get / set / delete per key
    - get_by_prefix: scan semua key yang diawali prefix (tanpa index, O(n))
    - update: read-modify-write satu key dalam satu transaksi DB
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> Optional[Document]:
        db = self._session()
        try:
            row = db.get(KVEntry, key)
            return dict(row.value) if row else None
        finally:
            db.close()

    def set(self, key: str, value: Document) -> None:
        db = self._session()
        try:
            # merge = insert atau replace penuh
            db.merge(KVEntry(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, key: str) -> None:
        db = self._session()
        try:
            db.query(KVEntry).filter(KVEntry.key == key).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get_by_prefix(self, prefix: str) -> List[Document]:
        db = self._session()
        try:
            rows = db.query(KVEntry).filter(KVEntry.key.startswith(prefix, autoescape=True)).all()
            return [dict(r.value) for r in rows]
        finally:
            db.close()

    def update(self, key: str, fn: Callable[[Document], Document]) -> Optional[Document]:
        """Kunci baris (FOR UPDATE), terapkan fn ke nilai lama, simpan. None jika key tidak ada.

        SQLite mengabaikan FOR UPDATE dan pysqlite baru membuka transaksi saat UPDATE,
        jadi di SQLite lock tulis diambil di awal dengan BEGIN IMMEDIATE.
        """
        db = self._session()
        try:
            conn = db.connection()
            if conn.dialect.name == "sqlite":
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            row = db.query(KVEntry).filter(KVEntry.key == key).with_for_update().first()
            if row is None:
                db.rollback()
                return None
            new_value = fn(dict(row.value))
            row.value = new_value
            db.commit()
            log.debug("Updated %s", key)
            return new_value
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
