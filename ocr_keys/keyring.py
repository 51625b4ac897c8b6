# ocr_keys/keyring.py

import logging
import threading

from ocr_keys.bundle import KeyBundle, generate_key_bundle
from ocr_keys.context import ScryptParams
from ocr_keys.store import SQLiteKeyStore
from ocr_keys.vault import EncryptedKeyBundle, decrypt, encrypt
from ocr_keys.workers import KeyWorkerPool

logger = logging.getLogger(__name__)

# Unlocked bundles by id. Memory only.
_unlocked: dict[str, KeyBundle] = {}
_lock = threading.Lock()


def _default_store(store):
    return store if store is not None else SQLiteKeyStore()


def remember(bundle: KeyBundle):
    with _lock:
        _unlocked[bundle.id] = bundle


# -----------------------------------------------------------
# Lifecycle
# -----------------------------------------------------------

def create_key_bundle(
    password: str,
    store=None,
    kdf_cost: ScryptParams | None = None,
    pool: KeyWorkerPool | None = None,
) -> KeyBundle:
    """
    Generate a bundle, persist its encrypted form and keep it unlocked.
    If encryption or the save fails, nothing is cached.

    With a pool, the scrypt work runs on one of its workers and this call
    blocks until it finishes.
    """
    store = _default_store(store)

    bundle = generate_key_bundle()
    if pool is not None:
        encrypted = pool.submit_encrypt(bundle, password, kdf_cost).result()
    else:
        encrypted = encrypt(bundle, password, kdf_cost)
    store.save(encrypted)
    remember(bundle)

    logger.info("Created OCR key bundle id=%s address=%s", bundle.id, bundle.on_chain_address())
    return bundle


def unlock_key_bundle(
    key_id: str,
    password: str,
    store=None,
    pool: KeyWorkerPool | None = None,
) -> KeyBundle:
    """Load by id and decrypt. Raises KeyNotFoundError or DecryptionError."""
    store = _default_store(store)

    encrypted = store.load(key_id)
    if pool is not None:
        bundle = pool.submit_decrypt(encrypted, password).result()
    else:
        bundle = decrypt(encrypted, password)
    remember(bundle)

    logger.info("Unlocked OCR key bundle id=%s", key_id)
    return bundle


def get_unlocked(key_id: str) -> KeyBundle | None:
    with _lock:
        return _unlocked.get(key_id)


def forget(key_id: str):
    with _lock:
        _unlocked.pop(key_id, None)


def forget_all():
    with _lock:
        _unlocked.clear()


def list_public_keys(store=None) -> list[dict]:
    return [public_record(enc) for enc in _default_store(store).list()]


def public_record(encrypted: EncryptedKeyBundle) -> dict:
    """JSON-safe public view of a stored bundle. Never includes the container."""
    return {
        "id": encrypted.id,
        "on_chain_signing_address": encrypted.on_chain_address,
        "off_chain_public_key": bytes(encrypted.off_chain_public_key).hex(),
        "created_at": encrypted.created_at.isoformat() if encrypted.created_at else None,
        "updated_at": encrypted.updated_at.isoformat() if encrypted.updated_at else None,
        "unlocked": get_unlocked(encrypted.id) is not None,
    }
