# ocr_keys/offchain.py

import logging

from nacl.signing import SigningKey, VerifyKey
from nacl.exceptions import BadSignatureError
from nacl.encoding import HexEncoder

logger = logging.getLogger(__name__)

SEED_SIZE = 32
PRIVATE_KEY_SIZE = 64  # seed || public key
PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE = 64


class OffChainSigningKey:
    """Ed25519 key used to sign consensus messages between oracles."""

    __slots__ = ("_sk",)

    def __init__(self, seed: bytes):
        if len(seed) != SEED_SIZE:
            raise ValueError(f"Ed25519 seed must be {SEED_SIZE} bytes")
        self._sk = SigningKey(bytes(seed))

    @classmethod
    def from_private_bytes(cls, private_key: bytes):
        """
        Accepts the 64-byte expanded form (seed || public key) and checks that
        the public half belongs to the seed.
        """
        if len(private_key) != PRIVATE_KEY_SIZE:
            raise ValueError(f"Ed25519 private key must be {PRIVATE_KEY_SIZE} bytes")
        key = cls(private_key[:SEED_SIZE])
        if key.public_key() != private_key[SEED_SIZE:]:
            raise ValueError("Ed25519 public half does not match seed")
        return key

    def private_bytes(self) -> bytes:
        return self._sk.encode() + self.public_key()

    def public_key(self) -> bytes:
        return self._sk.verify_key.encode()

    def sign(self, message: bytes) -> bytes:
        # Ed25519 hashes internally, no pre-hash here
        return self._sk.sign(message).signature

    def __repr__(self) -> str:
        return f"OffChainSigningKey(public_key={self._sk.verify_key.encode(encoder=HexEncoder).decode()})"

    def __reduce__(self):
        raise TypeError("OffChainSigningKey cannot be pickled")


def verify_off_chain(public_key: bytes, message: bytes, signature: bytes) -> bool:
    if len(public_key) != PUBLIC_KEY_SIZE or len(signature) != SIGNATURE_SIZE:
        return False
    try:
        VerifyKey(public_key).verify(message, signature)
        return True
    except BadSignatureError:
        logger.debug("Off-chain signature rejected")
        return False
