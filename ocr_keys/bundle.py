# ocr_keys/bundle.py

import hmac
import logging
from typing import Callable

from nacl.utils import random as nacl_random

from ocr_keys.codec import CanonicalRawKeyData, compute_key_id, render
from ocr_keys.context import CryptoContext, DEFAULT_CONTEXT
from ocr_keys.errors import EntropyError
from ocr_keys.exchange import ConfigEncryptionKey, SCALAR_SIZE
from ocr_keys.offchain import OffChainSigningKey, SEED_SIZE
from ocr_keys.onchain import OnChainSigningKey

logger = logging.getLogger(__name__)

# (size) -> exactly `size` cryptographically secure random bytes
RandomSource = Callable[[int], bytes]

# A uniform 256-bit draw misses [1, n-1] with probability ~2^-128; running
# out of attempts means the source is broken.
MAX_SCALAR_ATTEMPTS = 64


class KeyBundle:
    """
    The three OCR keys of one oracle plus their stable id.

    Only the generator and the vault build these. A bundle is immutable and
    never renders, pickles or copies its private material; repr() and str()
    show the on-chain address and the off-chain public key only.
    """

    __slots__ = ("_id", "_on_chain", "_off_chain", "_exchange")

    def __init__(
        self,
        on_chain: OnChainSigningKey,
        off_chain: OffChainSigningKey,
        exchange: ConfigEncryptionKey,
        key_id: str | None = None,
    ):
        if on_chain is None or off_chain is None or exchange is None:
            raise ValueError("a key bundle needs all three keys")
        object.__setattr__(self, "_on_chain", on_chain)
        object.__setattr__(self, "_off_chain", off_chain)
        object.__setattr__(self, "_exchange", exchange)
        object.__setattr__(self, "_id", key_id or compute_key_id(self.raw_key_data()))

    def __setattr__(self, name, value):
        raise AttributeError("KeyBundle is immutable")

    # -------------------------------------------------------
    # Identity
    # -------------------------------------------------------
    @property
    def id(self) -> str:
        return self._id

    def on_chain_address(self) -> str:
        return self._on_chain.address()

    def on_chain_public_key(self) -> bytes:
        return self._on_chain.public_key()

    def off_chain_public_key(self) -> bytes:
        return self._off_chain.public_key()

    def config_public_key(self) -> bytes:
        return self._exchange.public_key()

    # -------------------------------------------------------
    # Operations
    # -------------------------------------------------------
    def sign_on_chain(self, message: bytes) -> bytes:
        return self._on_chain.sign(bytes(message))

    def sign_off_chain(self, message: bytes) -> bytes:
        return self._off_chain.sign(bytes(message))

    def compute_shared_secret(self, peer_public_key: bytes) -> bytes:
        return self._exchange.shared_secret(peer_public_key)

    def raw_key_data(self) -> CanonicalRawKeyData:
        """Private material in canonical form. For the codec and the vault only."""
        x, y = self._on_chain.point
        return CanonicalRawKeyData(
            ecdsa_d=self._on_chain.secret,
            ecdsa_x=x,
            ecdsa_y=y,
            ed25519_private_key=self._off_chain.private_bytes(),
            x25519_scalar=self._exchange.private_bytes(),
        )

    # -------------------------------------------------------
    # Non-disclosure
    # -------------------------------------------------------
    def __repr__(self) -> str:
        return render(self)

    def __str__(self) -> str:
        return render(self)

    def __format__(self, format_spec: str) -> str:
        return format(render(self), format_spec)

    def __reduce__(self):
        raise TypeError("KeyBundle cannot be pickled or copied; encrypt it with the vault")

    def __eq__(self, other):
        if not isinstance(other, KeyBundle):
            return NotImplemented
        return hmac.compare_digest(self._id, other._id)

    def __hash__(self):
        return hash(self._id)


def bundle_from_raw(
    raw: CanonicalRawKeyData,
    key_id: str | None = None,
    context: CryptoContext = DEFAULT_CONTEXT,
) -> KeyBundle:
    """
    Rebuild a bundle from canonical data. Raises ValueError when the stored
    public halves do not match the private halves.
    """
    return KeyBundle(
        on_chain=OnChainSigningKey.from_raw(raw.ecdsa_d, raw.ecdsa_x, raw.ecdsa_y, context),
        off_chain=OffChainSigningKey.from_private_bytes(raw.ed25519_private_key),
        exchange=ConfigEncryptionKey(raw.x25519_scalar),
        key_id=key_id,
    )


# -----------------------------------------------------------
# Generator
# -----------------------------------------------------------

def _draw(random_source: RandomSource, size: int) -> bytes:
    try:
        data = random_source(size)
    except Exception as exc:
        raise EntropyError(f"random source failed: {type(exc).__name__}") from exc
    if not isinstance(data, (bytes, bytearray)) or len(data) != size:
        raise EntropyError(f"random source returned short output (wanted {size} bytes)")
    return bytes(data)


def _draw_scalar(random_source: RandomSource, context: CryptoContext) -> int:
    for _ in range(MAX_SCALAR_ATTEMPTS):
        candidate = int.from_bytes(_draw(random_source, context.scalar_size), "big")
        if 1 <= candidate < context.order:
            return candidate
    raise EntropyError("random source never produced a valid curve scalar")


def generate_key_bundle(
    random_source: RandomSource | None = None,
    context: CryptoContext = DEFAULT_CONTEXT,
) -> KeyBundle:
    """
    Draw fresh entropy for all three keys and assemble a bundle.

    Raises EntropyError if the random source fails; nothing is retried.
    """
    random_source = random_source or nacl_random

    secret = _draw_scalar(random_source, context)
    seed = _draw(random_source, SEED_SIZE)
    scalar = _draw(random_source, SCALAR_SIZE)

    bundle = KeyBundle(
        on_chain=OnChainSigningKey(secret, context),
        off_chain=OffChainSigningKey(seed),
        exchange=ConfigEncryptionKey(scalar),
    )
    logger.info("Generated OCR key bundle id=%s address=%s", bundle.id, bundle.on_chain_address())
    return bundle


# -----------------------------------------------------------
# Functional API
# -----------------------------------------------------------

def sign_on_chain(bundle: KeyBundle, message: bytes) -> bytes:
    return bundle.sign_on_chain(message)


def sign_off_chain(bundle: KeyBundle, message: bytes) -> bytes:
    return bundle.sign_off_chain(message)


def compute_shared_secret(bundle: KeyBundle, peer_public_key: bytes) -> bytes:
    return bundle.compute_shared_secret(peer_public_key)
