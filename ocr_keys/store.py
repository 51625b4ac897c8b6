# ocr_keys/store.py

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from ocr_keys.database import get_db
from ocr_keys.errors import KeyNotFoundError
from ocr_keys.vault import EncryptedKeyBundle

logger = logging.getLogger(__name__)


@runtime_checkable
class Store(Protocol):
    """What the core needs from durable storage: put and get by id."""
    def save(self, encrypted: EncryptedKeyBundle) -> EncryptedKeyBundle: ...
    def load(self, key_id: str) -> EncryptedKeyBundle: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_bundle(row) -> EncryptedKeyBundle:
    return EncryptedKeyBundle(
        id=row["id"],
        on_chain_address=row["on_chain_signing_address"],
        off_chain_public_key=bytes.fromhex(row["off_chain_public_key"]),
        container=bytes(row["encrypted_priv_keys"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SQLiteKeyStore:
    """
    Encrypted bundles in the encrypted_ocr_private_keys table.
    Only ever sees EncryptedKeyBundle; plaintext keys never reach the DB.
    """

    def __init__(self, conn: sqlite3.Connection | None = None):
        self._conn = conn
        # sqlite3 connections are shared across threads; serialize writes
        self._lock = threading.Lock()

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn if self._conn is not None else get_db()

    def save(self, encrypted: EncryptedKeyBundle) -> EncryptedKeyBundle:
        now = _now()
        try:
            with self._lock:
                self.conn.execute(
                    """
                    INSERT INTO encrypted_ocr_private_keys(
                        id, on_chain_signing_address, off_chain_public_key,
                        encrypted_priv_keys, created_at, updated_at
                    ) VALUES (?,?,?,?,?,?)
                    ON CONFLICT(id) DO UPDATE SET
                        encrypted_priv_keys=excluded.encrypted_priv_keys,
                        updated_at=excluded.updated_at
                    """,
                    (
                        encrypted.id,
                        encrypted.on_chain_address,
                        bytes(encrypted.off_chain_public_key).hex(),
                        bytes(encrypted.container),
                        now,
                        now,
                    ),
                )
                self.conn.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to save OCR key %s: %s", encrypted.id, exc)
            raise

        logger.info("Saved encrypted OCR key %s", encrypted.id)
        return self.load(encrypted.id)

    def load(self, key_id: str) -> EncryptedKeyBundle:
        row = self.conn.execute(
            "SELECT * FROM encrypted_ocr_private_keys WHERE id=?",
            (key_id,),
        ).fetchone()
        if row is None:
            raise KeyNotFoundError(f"no OCR key with id {key_id}")
        return _row_to_bundle(row)

    def list(self) -> list[EncryptedKeyBundle]:
        rows = self.conn.execute(
            "SELECT * FROM encrypted_ocr_private_keys ORDER BY created_at, id"
        ).fetchall()
        return [_row_to_bundle(r) for r in rows]

    def delete(self, key_id: str):
        with self._lock:
            cur = self.conn.execute(
                "DELETE FROM encrypted_ocr_private_keys WHERE id=?",
                (key_id,),
            )
            self.conn.commit()
        if cur.rowcount == 0:
            raise KeyNotFoundError(f"no OCR key with id {key_id}")
        logger.info("Deleted encrypted OCR key %s", key_id)
