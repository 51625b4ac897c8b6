# ocr_keys/vault.py
"""
Password encryption of key bundles. The container is the only form in which
private key material is allowed to leave the process.

Container (UTF-8 JSON, sorted keys):

    {
      "version": 1,
      "kdf": {"algorithm": "scrypt", "n": N, "r": R, "p": P, "dklen": 32, "salt": hex},
      "cipher": {"algorithm": "xsalsa20-poly1305", "nonce": hex},
      "ciphertext": hex,
      "tag": hex
    }

Every failure to open a container raises the same DecryptionError, whether
the password was wrong or the bytes were damaged. Only an unknown version is
reported differently (UnsupportedFormatError).
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime

from nacl import bindings
from nacl.secret import SecretBox
from nacl.utils import random as nacl_random

from ocr_keys.bundle import KeyBundle, bundle_from_raw
from ocr_keys.codec import compute_key_id, deserialize, serialize
from ocr_keys.context import CryptoContext, DEFAULT_CONTEXT, ScryptParams, configured_scrypt_params
from ocr_keys.errors import DecryptionError, EncryptionError, UnsupportedFormatError

logger = logging.getLogger(__name__)

CONTAINER_VERSION = 1
KDF_ALGORITHM = "scrypt"
CIPHER_ALGORITHM = "xsalsa20-poly1305"

SALT_SIZE = 16
TAG_SIZE = bindings.crypto_secretbox_MACBYTES  # 16

_DECRYPTION_FAILED = "could not decrypt OCR key bundle"


@dataclass(frozen=True)
class EncryptedKeyBundle:
    """The persistable form of a KeyBundle. Everything here is public except
    what is sealed inside `container`."""
    id: str
    on_chain_address: str
    off_chain_public_key: bytes
    container: bytes
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class _Container:
    params: ScryptParams
    salt: bytes
    nonce: bytes
    ciphertext: bytes
    tag: bytes


def _adulterated_password(password: str, context: CryptoContext) -> bytes:
    # the prefix keeps an OCR key password from opening any other key type
    return (context.password_prefix + password).encode("utf-8")


def _derive_key(password: bytes, salt: bytes, params: ScryptParams) -> bytes:
    return hashlib.scrypt(
        password,
        salt=salt,
        n=params.n,
        r=params.r,
        p=params.p,
        maxmem=params.maxmem(),
        dklen=params.dklen,
    )


# -----------------------------------------------------------
# Encrypt
# -----------------------------------------------------------

def encrypt(
    bundle: KeyBundle,
    password: str,
    kdf_cost: ScryptParams | None = None,
    context: CryptoContext = DEFAULT_CONTEXT,
) -> EncryptedKeyBundle:
    """
    Seal the bundle's canonical bytes under a key derived from password.

    kdf_cost defaults to the configured profile and must lie within the
    limits decrypt accepts. The bundle itself is left untouched. Raises
    EncryptionError; nothing partial is ever returned.
    """
    if not isinstance(password, str) or not password:
        raise EncryptionError("password must be a non-empty string")

    try:
        params = (kdf_cost or configured_scrypt_params()).validate()
    except ValueError as exc:
        logger.error("Refusing to encrypt OCR key bundle %s: %s", bundle.id, exc)
        raise EncryptionError(f"invalid scrypt cost: {exc}") from exc

    try:
        plaintext = serialize(bundle)
        salt = nacl_random(SALT_SIZE)
        key = _derive_key(_adulterated_password(password, context), salt, params)

        sealed = SecretBox(key).encrypt(plaintext)
        # pynacl lays the Poly1305 tag in front of the ciphertext
        tag, ciphertext = sealed.ciphertext[:TAG_SIZE], sealed.ciphertext[TAG_SIZE:]

        doc = {
            "version": CONTAINER_VERSION,
            "kdf": {
                "algorithm": KDF_ALGORITHM,
                "n": params.n,
                "r": params.r,
                "p": params.p,
                "dklen": params.dklen,
                "salt": salt.hex(),
            },
            "cipher": {
                "algorithm": CIPHER_ALGORITHM,
                "nonce": sealed.nonce.hex(),
            },
            "ciphertext": ciphertext.hex(),
            "tag": tag.hex(),
        }
        container = json.dumps(doc, sort_keys=True, separators=(",", ":")).encode("utf-8")

        encrypted = EncryptedKeyBundle(
            id=bundle.id,
            on_chain_address=bundle.on_chain_address(),
            off_chain_public_key=bundle.off_chain_public_key(),
            container=container,
        )
    except Exception as exc:
        logger.error("Failed to encrypt OCR key bundle %s: %s", bundle.id, type(exc).__name__)
        raise EncryptionError(f"could not encrypt OCR key bundle {bundle.id}") from exc

    logger.debug("Encrypted OCR key bundle %s (scrypt n=%d p=%d)", bundle.id, params.n, params.p)
    return encrypted


# -----------------------------------------------------------
# Decrypt
# -----------------------------------------------------------

def _parse_container(container: bytes) -> _Container:
    try:
        doc = json.loads(bytes(container).decode("utf-8"))
    except (TypeError, ValueError):
        raise DecryptionError(_DECRYPTION_FAILED) from None
    if not isinstance(doc, dict):
        raise DecryptionError(_DECRYPTION_FAILED)

    version = doc.get("version")
    if version != CONTAINER_VERSION or isinstance(version, bool):
        if isinstance(version, int) and not isinstance(version, bool):
            raise UnsupportedFormatError(f"unsupported OCR key container version: {version}")
        raise DecryptionError(_DECRYPTION_FAILED)

    try:
        kdf = doc["kdf"]
        cipher = doc["cipher"]
        if kdf["algorithm"] != KDF_ALGORITHM or cipher["algorithm"] != CIPHER_ALGORITHM:
            raise ValueError("unknown algorithm")

        params = ScryptParams(n=kdf["n"], p=kdf["p"], r=kdf["r"], dklen=kdf["dklen"]).validate()

        parsed = _Container(
            params=params,
            salt=bytes.fromhex(kdf["salt"]),
            nonce=bytes.fromhex(cipher["nonce"]),
            ciphertext=bytes.fromhex(doc["ciphertext"]),
            tag=bytes.fromhex(doc["tag"]),
        )
    except (KeyError, TypeError, ValueError):
        raise DecryptionError(_DECRYPTION_FAILED) from None

    if len(parsed.nonce) != SecretBox.NONCE_SIZE or len(parsed.tag) != TAG_SIZE:
        raise DecryptionError(_DECRYPTION_FAILED)
    return parsed


def decrypt(
    encrypted: EncryptedKeyBundle,
    password: str,
    context: CryptoContext = DEFAULT_CONTEXT,
) -> KeyBundle:
    """
    Open the container with password and rebuild the bundle under the
    persisted id. The id and public identity are recomputed and must match
    the record.
    """
    parsed = _parse_container(encrypted.container)

    try:
        key = _derive_key(_adulterated_password(str(password), context), parsed.salt, parsed.params)
        plaintext = SecretBox(key).decrypt(parsed.tag + parsed.ciphertext, parsed.nonce)

        raw = deserialize(plaintext)
        if compute_key_id(raw) != encrypted.id:
            raise ValueError("id mismatch")

        bundle = bundle_from_raw(raw, key_id=encrypted.id, context=context)
        if bundle.on_chain_address().lower() != encrypted.on_chain_address.lower():
            raise ValueError("on-chain address mismatch")
        if bundle.off_chain_public_key() != bytes(encrypted.off_chain_public_key):
            raise ValueError("off-chain public key mismatch")
    except Exception:
        # one message for every cause: no password oracle
        logger.warning("Failed to decrypt OCR key bundle %s", encrypted.id)
        raise DecryptionError(_DECRYPTION_FAILED) from None

    logger.debug("Decrypted OCR key bundle %s", encrypted.id)
    return bundle
