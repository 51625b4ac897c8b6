import os
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
BASE_DIR = Path(os.getenv("OCR_BASE_DIR", "./ocr_data"))
DB_PATH = BASE_DIR / "keys.db"

# ---------------------------------------------------------------------------
# Key encryption
# ---------------------------------------------------------------------------
OCR_KEY_PASSWORD = os.getenv("OCR_KEY_PASSWORD", "")

# "production" or "test"; both use scrypt, only the cost differs
KDF_PROFILE = os.getenv("OCR_KDF_PROFILE", "production").lower()
SCRYPT_N = int(os.getenv("OCR_SCRYPT_N", "0"))  # 0 = profile default
SCRYPT_P = int(os.getenv("OCR_SCRYPT_P", "0"))  # 0 = profile default

KDF_WORKERS = int(os.getenv("OCR_KDF_WORKERS", str(min(4, os.cpu_count() or 1))))

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
OCR_PORT = int(os.getenv("OCR_PORT", "6688"))
OCR_HOST = os.getenv("OCR_HOST", "127.0.0.1")
SSL_CERTFILE = os.getenv("SSL_CERTFILE", str(BASE_DIR / "ssl" / "cert.pem"))
SSL_KEYFILE = os.getenv("SSL_KEYFILE", str(BASE_DIR / "ssl" / "key.pem"))

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s  %(name)-28s  %(levelname)-7s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def ensure_directories():
    BASE_DIR.mkdir(parents=True, exist_ok=True)
