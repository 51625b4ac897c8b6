import logging

from fastapi import FastAPI, HTTPException, Request
from starlette.responses import JSONResponse

from ocr_keys import config, keyring
from ocr_keys.database import close_db, get_db
from ocr_keys.errors import (
    DecryptionError,
    EncryptionError,
    KeyNotFoundError,
    UnsupportedFormatError,
)
from ocr_keys.store import SQLiteKeyStore
from ocr_keys.workers import get_pool, shutdown_pool

logger = logging.getLogger(__name__)

app = FastAPI(title="OCR Key Node", version="1.0.0")

store = SQLiteKeyStore()


def _require_password() -> str:
    if not config.OCR_KEY_PASSWORD:
        raise HTTPException(status_code=503, detail="OCR_KEY_PASSWORD is not configured")
    return config.OCR_KEY_PASSWORD


# --------------------------------------------
# Error mapping (messages carry ids only)
# --------------------------------------------
@app.exception_handler(KeyNotFoundError)
async def key_not_found(request: Request, exc: KeyNotFoundError):
    return JSONResponse(status_code=404, content={"error": "OCR key not found"})


@app.exception_handler(DecryptionError)
async def decryption_failed(request: Request, exc: DecryptionError):
    return JSONResponse(status_code=401, content={"error": str(exc)})


@app.exception_handler(UnsupportedFormatError)
async def unsupported_format(request: Request, exc: UnsupportedFormatError):
    return JSONResponse(status_code=422, content={"error": str(exc)})


@app.exception_handler(EncryptionError)
async def encryption_failed(request: Request, exc: EncryptionError):
    return JSONResponse(status_code=500, content={"error": "could not encrypt OCR key"})


@app.on_event("startup")
def startup():
    config.ensure_directories()
    get_db()
    get_pool()
    logger.info("OCR key node ready (kdf profile=%s)", config.KDF_PROFILE)


@app.on_event("shutdown")
def shutdown():
    shutdown_pool()
    close_db()


# ---------------------------------------------------------
# HEALTH CHECK
# ---------------------------------------------------------
@app.get("/health")
def health_check():
    checks = {"database": False, "password": bool(config.OCR_KEY_PASSWORD)}

    try:
        get_db().execute("SELECT 1").fetchone()
        checks["database"] = True
    except Exception as e:
        logger.error(f"Health check DB failed: {e}")

    all_ok = all(checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "healthy" if all_ok else "degraded", "checks": checks}
    )


# ---------------------------------------------------------
# OCR KEYS
# ---------------------------------------------------------
@app.get("/v2/keys/ocr")
def list_ocr_keys():
    return {"data": keyring.list_public_keys(store)}


@app.get("/v2/keys/ocr/{key_id}")
def get_ocr_key(key_id: str):
    return {"data": keyring.public_record(store.load(key_id))}


# Plain def routes: FastAPI runs them off the event loop, so the sqlite calls
# and the wait on the KDF pool never block it.
@app.post("/v2/keys/ocr", status_code=201)
def create_ocr_key():
    password = _require_password()

    bundle = keyring.create_key_bundle(password, store=store, pool=get_pool())
    return {"data": keyring.public_record(store.load(bundle.id))}


@app.post("/v2/keys/ocr/{key_id}/unlock")
def unlock_ocr_key(key_id: str):
    password = _require_password()

    bundle = keyring.unlock_key_bundle(key_id, password, store=store, pool=get_pool())
    return {"data": keyring.public_record(store.load(bundle.id))}


@app.delete("/v2/keys/ocr/{key_id}")
def delete_ocr_key(key_id: str):
    store.delete(key_id)
    keyring.forget(key_id)
    return {"status": "ok", "action": "deleted", "id": key_id}
