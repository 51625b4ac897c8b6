# ocr_keys/exchange.py

import hmac
import logging

from nacl import bindings
from nacl.exceptions import CryptoError
from nacl.encoding import HexEncoder

from ocr_keys.errors import InvalidPeerPointError

logger = logging.getLogger(__name__)

SCALAR_SIZE = bindings.crypto_scalarmult_SCALARBYTES  # 32
POINT_SIZE = bindings.crypto_scalarmult_BYTES  # 32

_ZERO_POINT = bytes(POINT_SIZE)


class ConfigEncryptionKey:
    """
    X25519 scalar used only for key agreement: peers use the shared point to
    distribute the secrets in an oracle configuration. Never signs.
    """

    __slots__ = ("_scalar",)

    def __init__(self, scalar: bytes):
        if len(scalar) != SCALAR_SIZE:
            raise ValueError(f"X25519 scalar must be {SCALAR_SIZE} bytes")
        self._scalar = bytes(scalar)

    def private_bytes(self) -> bytes:
        return self._scalar

    def public_key(self) -> bytes:
        return bindings.crypto_scalarmult_base(self._scalar)

    def shared_secret(self, peer_public_key: bytes) -> bytes:
        """
        X25519(scalar, peer). libsodium refuses low-order peer points (the
        result would be all zeroes); that refusal is surfaced as
        InvalidPeerPointError, never replaced by a default.
        """
        if not isinstance(peer_public_key, (bytes, bytearray)) or len(peer_public_key) != POINT_SIZE:
            raise InvalidPeerPointError(f"peer public key must be {POINT_SIZE} bytes")

        try:
            shared = bindings.crypto_scalarmult(self._scalar, bytes(peer_public_key))
        except CryptoError:
            logger.warning("Rejected degenerate peer point %s", bytes(peer_public_key).hex())
            raise InvalidPeerPointError("peer public key is a low-order point") from None

        if hmac.compare_digest(shared, _ZERO_POINT):
            raise InvalidPeerPointError("peer public key is a low-order point")
        return shared

    def __repr__(self) -> str:
        return f"ConfigEncryptionKey(public_key={HexEncoder.encode(self.public_key()).decode()})"

    def __reduce__(self):
        raise TypeError("ConfigEncryptionKey cannot be pickled")
