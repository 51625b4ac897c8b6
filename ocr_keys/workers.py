# ocr_keys/workers.py

import concurrent.futures
import logging

from ocr_keys import config
from ocr_keys.bundle import KeyBundle
from ocr_keys.context import ScryptParams
from ocr_keys.vault import EncryptedKeyBundle, decrypt, encrypt

logger = logging.getLogger(__name__)


class KeyWorkerPool:
    """
    Bounded pool for the scrypt-heavy vault calls, so they stay off the
    request path. Work that has started always runs to completion: shutdown
    waits and nothing is cancelled mid-derivation.
    """

    def __init__(self, max_workers: int | None = None):
        self.max_workers = max_workers or config.KDF_WORKERS
        self._pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="ocr-kdf",
        )

    def submit_encrypt(
        self,
        bundle: KeyBundle,
        password: str,
        kdf_cost: ScryptParams | None = None,
    ) -> "concurrent.futures.Future[EncryptedKeyBundle]":
        return self._pool.submit(encrypt, bundle, password, kdf_cost)

    def submit_decrypt(
        self,
        encrypted: EncryptedKeyBundle,
        password: str,
    ) -> "concurrent.futures.Future[KeyBundle]":
        return self._pool.submit(decrypt, encrypted, password)

    def shutdown(self):
        # queued jobs still run; cancelling could abandon a derivation halfway
        self._pool.shutdown(wait=True, cancel_futures=False)
        logger.info("KDF worker pool stopped")


_pool = None


def get_pool() -> KeyWorkerPool:
    global _pool
    if _pool is None:
        _pool = KeyWorkerPool()
        logger.info("KDF worker pool started (%d workers)", _pool.max_workers)
    return _pool


def shutdown_pool():
    global _pool
    if _pool is not None:
        _pool.shutdown()
        _pool = None
