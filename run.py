import logging
from pathlib import Path

import uvicorn

from ocr_keys.config import (
    OCR_PORT, OCR_HOST, SSL_CERTFILE, SSL_KEYFILE,
    LOG_LEVEL, ensure_directories,
)

logger = logging.getLogger(__name__)


def _tls_kwargs() -> dict:
    cert = Path(SSL_CERTFILE)
    key = Path(SSL_KEYFILE)

    if cert.exists() and key.exists():
        return {"ssl_certfile": str(cert), "ssl_keyfile": str(key)}

    logger.warning("No TLS certificate at %s; serving plain HTTP on %s", cert, OCR_HOST)
    return {}


if __name__ == "__main__":
    ensure_directories()

    uvicorn.run(
        "ocr_keys.main:app",
        port=OCR_PORT,
        host=OCR_HOST,
        reload=False,
        log_level=LOG_LEVEL.lower(),
        **_tls_kwargs(),
    )
