# ocr_keys/onchain.py

import hashlib
import logging

from Crypto.Hash import keccak
from ecdsa import SigningKey, VerifyingKey, BadSignatureError
from ecdsa.util import sigdecode_string, sigencode_string_canonize

from ocr_keys.context import CryptoContext, DEFAULT_CONTEXT

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65  # r(32) || s(32) || v(1)


def keccak256(data: bytes) -> bytes:
    """Ethereum's Keccak-256 (pre-NIST padding, not hashlib.sha3_256)."""
    return keccak.new(digest_bits=256, data=data).digest()


def to_checksum_address(addr: bytes) -> str:
    """EIP-55 mixed-case hex with 0x prefix."""
    hex_addr = addr.hex()
    hashed = keccak256(hex_addr.encode()).hex()
    out = "0x"
    for c, h in zip(hex_addr, hashed):
        out += c.upper() if int(h, 16) >= 8 else c
    return out


def address_from_public_key(public_key: bytes, context: CryptoContext = DEFAULT_CONTEXT) -> str:
    """
    public_key is the 64-byte uncompressed point X || Y (no 0x04 prefix).
    Address = last N bytes of keccak256(X || Y).
    """
    if len(public_key) != 2 * context.scalar_size:
        raise ValueError(f"public key must be {2 * context.scalar_size} bytes")
    return to_checksum_address(keccak256(public_key)[-context.address_length:])


class OnChainSigningKey:
    """
    secp256k1 ECDSA key whose signatures the ledger verifies.

    Immutable after construction; safe to share between threads.
    """

    __slots__ = ("_sk", "_context")

    def __init__(self, secret: int, context: CryptoContext = DEFAULT_CONTEXT):
        if not 1 <= secret < context.order:
            raise ValueError("on-chain scalar out of range")
        self._context = context
        self._sk = SigningKey.from_secret_exponent(secret, curve=context.curve, hashfunc=hashlib.sha256)

    @classmethod
    def from_raw(cls, secret: int, x: int, y: int, context: CryptoContext = DEFAULT_CONTEXT):
        """Rebuild from stored components, rejecting a point that does not match the scalar."""
        key = cls(secret, context)
        point = key._sk.verifying_key.pubkey.point
        if point.x() != x or point.y() != y:
            raise ValueError("on-chain public point does not match scalar")
        return key

    # -------------------------------------------------------
    # Raw components (codec only)
    # -------------------------------------------------------
    @property
    def secret(self) -> int:
        return self._sk.privkey.secret_multiplier

    @property
    def point(self) -> tuple[int, int]:
        point = self._sk.verifying_key.pubkey.point
        return point.x(), point.y()

    # -------------------------------------------------------
    # Public API
    # -------------------------------------------------------
    def public_key(self) -> bytes:
        """Uncompressed point X || Y, 64 bytes."""
        return self._sk.verifying_key.to_string()

    def address(self) -> str:
        return address_from_public_key(self.public_key(), self._context)

    def sign(self, message: bytes) -> bytes:
        """
        Sign keccak256(message).

        Returns r || s || v: 32-byte big-endian r and s with s in the lower
        half of the curve order, then the recovery id v in {0, 1}. This is
        the layout go-ethereum's crypto.Sign produces and ecrecover accepts
        (after adding 27 on-chain).
        """
        digest = keccak256(message)
        rs = self._sk.sign_digest_deterministic(
            digest,
            hashfunc=hashlib.sha256,
            sigencode=sigencode_string_canonize,
        )
        return rs + bytes([self._recovery_id(rs, digest)])

    def _recovery_id(self, rs: bytes, digest: bytes) -> int:
        # candidates come back ordered by the parity of R.y: even first
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            rs,
            digest,
            self._context.curve,
            hashfunc=hashlib.sha256,
            sigdecode=sigdecode_string,
        )
        own = self.public_key()
        for recid, candidate in enumerate(candidates):
            if candidate.to_string() == own:
                return recid
        raise RuntimeError("could not derive recovery id for signature")

    def __repr__(self) -> str:
        return f"OnChainSigningKey(address={self.address()})"

    def __reduce__(self):
        raise TypeError("OnChainSigningKey cannot be pickled")


# -----------------------------------------------------------
# Verification helpers
# -----------------------------------------------------------

def _recover_verifying_key(message: bytes, signature: bytes, context: CryptoContext) -> VerifyingKey:
    if len(signature) != SIGNATURE_LENGTH:
        raise ValueError(f"signature must be {SIGNATURE_LENGTH} bytes")
    v = signature[64]
    if v not in (0, 1):
        raise ValueError("recovery id must be 0 or 1")

    candidates = VerifyingKey.from_public_key_recovery_with_digest(
        signature[:64],
        keccak256(message),
        context.curve,
        hashfunc=hashlib.sha256,
        sigdecode=sigdecode_string,
    )
    return candidates[v]


def recover_address(message: bytes, signature: bytes, context: CryptoContext = DEFAULT_CONTEXT) -> str:
    """
    Recover the signer's address from an r || s || v signature, the way the
    ledger's ecrecover does. Raises ValueError on a malformed signature.
    """
    vk = _recover_verifying_key(message, signature, context)
    return address_from_public_key(vk.to_string(), context)


def verify_on_chain(address: str, message: bytes, signature: bytes,
                    context: CryptoContext = DEFAULT_CONTEXT) -> bool:
    """True when signature is low-s, verifies, and recovers to address."""
    try:
        s = int.from_bytes(signature[32:64], "big")
        if s > context.order // 2:
            return False
        vk = _recover_verifying_key(message, signature, context)
        vk.verify_digest(signature[:64], keccak256(message), sigdecode=sigdecode_string)
    except BadSignatureError:
        return False
    except Exception as exc:
        logger.debug("On-chain signature rejected: %s", exc)
        return False
    return address_from_public_key(vk.to_string(), context).lower() == address.lower()
