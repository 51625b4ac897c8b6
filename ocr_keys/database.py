# ocr_keys/database.py

import logging
import sqlite3

from ocr_keys import config

logger = logging.getLogger(__name__)

_conn = None


def get_db():
    """
    Returns a global SQLite connection and initializes the DB schema if needed.
    The connection is created with check_same_thread=False so FastAPI worker
    threads and the KDF pool can use the same connection.
    """
    global _conn
    if _conn is None:
        config.ensure_directories()

        _conn = sqlite3.connect(config.DB_PATH, check_same_thread=False)
        _conn.row_factory = sqlite3.Row

        # ---- Performance pragmas ----
        _conn.execute("PRAGMA journal_mode=WAL")
        _conn.execute("PRAGMA synchronous=NORMAL")

        # -----------------------------------------------------
        #  ENCRYPTED OCR KEY BUNDLES
        # -----------------------------------------------------
        _conn.execute("""
            CREATE TABLE IF NOT EXISTS encrypted_ocr_private_keys (
                id TEXT PRIMARY KEY,
                on_chain_signing_address TEXT NOT NULL,
                off_chain_public_key TEXT NOT NULL,
                encrypted_priv_keys BLOB NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
        """)

        _conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_ocr_keys_address "
            "ON encrypted_ocr_private_keys(on_chain_signing_address)"
        )

        _conn.commit()
        logger.info("Database initialized at %s", config.DB_PATH)

    return _conn


def close_db():
    global _conn
    if _conn is not None:
        _conn.close()
        _conn = None
