# ocr_keys/codec.py
"""
Canonical byte layout of a key bundle's private material.

The same 192 bytes are hashed to derive the bundle id and encrypted by the
vault, so the layout is fixed here rather than left to a serializer:

    offset  width  field
    0       32     secp256k1 private scalar d        (big-endian)
    32      32     secp256k1 public point X          (big-endian)
    64      32     secp256k1 public point Y          (big-endian)
    96      64     Ed25519 private key, seed || public key
    160     32     X25519 private scalar

Identical key material always yields identical bytes.

Render is the only display form of a bundle. It is built from PublicKeyInfo,
which holds public fields only.
"""

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from nacl.encoding import HexEncoder

if TYPE_CHECKING:
    from ocr_keys.bundle import KeyBundle

SCALAR_WIDTH = 32
ED25519_PRIVATE_WIDTH = 64
X25519_SCALAR_WIDTH = 32

RAW_KEY_DATA_SIZE = 3 * SCALAR_WIDTH + ED25519_PRIVATE_WIDTH + X25519_SCALAR_WIDTH  # 192

_ED25519_OFFSET = 3 * SCALAR_WIDTH
_X25519_OFFSET = _ED25519_OFFSET + ED25519_PRIVATE_WIDTH


@dataclass(frozen=True, repr=False)
class CanonicalRawKeyData:
    ecdsa_d: int
    ecdsa_x: int
    ecdsa_y: int
    ed25519_private_key: bytes
    x25519_scalar: bytes

    def to_bytes(self) -> bytes:
        if len(self.ed25519_private_key) != ED25519_PRIVATE_WIDTH:
            raise ValueError("Ed25519 private key has the wrong width")
        if len(self.x25519_scalar) != X25519_SCALAR_WIDTH:
            raise ValueError("X25519 scalar has the wrong width")
        return b"".join([
            self.ecdsa_d.to_bytes(SCALAR_WIDTH, "big"),
            self.ecdsa_x.to_bytes(SCALAR_WIDTH, "big"),
            self.ecdsa_y.to_bytes(SCALAR_WIDTH, "big"),
            bytes(self.ed25519_private_key),
            bytes(self.x25519_scalar),
        ])

    @classmethod
    def from_bytes(cls, data: bytes) -> "CanonicalRawKeyData":
        if len(data) != RAW_KEY_DATA_SIZE:
            raise ValueError(f"raw key data must be {RAW_KEY_DATA_SIZE} bytes, got {len(data)}")
        return cls(
            ecdsa_d=int.from_bytes(data[0:SCALAR_WIDTH], "big"),
            ecdsa_x=int.from_bytes(data[SCALAR_WIDTH:2 * SCALAR_WIDTH], "big"),
            ecdsa_y=int.from_bytes(data[2 * SCALAR_WIDTH:_ED25519_OFFSET], "big"),
            ed25519_private_key=bytes(data[_ED25519_OFFSET:_X25519_OFFSET]),
            x25519_scalar=bytes(data[_X25519_OFFSET:RAW_KEY_DATA_SIZE]),
        )

    def __repr__(self) -> str:
        return "CanonicalRawKeyData(<redacted>)"

    def __reduce__(self):
        raise TypeError("CanonicalRawKeyData cannot be pickled")


def serialize(bundle: "KeyBundle") -> bytes:
    return bundle.raw_key_data().to_bytes()


def deserialize(data: bytes) -> CanonicalRawKeyData:
    return CanonicalRawKeyData.from_bytes(data)


def compute_key_id(raw: CanonicalRawKeyData) -> str:
    """Lowercase hex SHA-256 of the canonical bytes."""
    return hashlib.sha256(raw.to_bytes()).hexdigest()


# -----------------------------------------------------------
# Display
# -----------------------------------------------------------

@dataclass(frozen=True)
class PublicKeyInfo:
    on_chain_address: str
    off_chain_public_key: str  # hex

    def __str__(self) -> str:
        return (
            f"OCRKeyBundle{{OnChainAddress: {self.on_chain_address}, "
            f"OffChainPublicKey: {self.off_chain_public_key}}}"
        )


def public_info(bundle: "KeyBundle") -> PublicKeyInfo:
    return PublicKeyInfo(
        on_chain_address=bundle.on_chain_address(),
        off_chain_public_key=HexEncoder.encode(bundle.off_chain_public_key()).decode(),
    )


def render(bundle: "KeyBundle") -> str:
    return str(public_info(bundle))
