# ocr_keys/context.py

from dataclasses import dataclass, field

from ecdsa import SECP256k1
from ecdsa.curves import Curve

from ocr_keys import config

# Scrypt costs the vault both writes and reads. Bounded so a tampered record
# cannot make decryption allocate unbounded memory.
MAX_SCRYPT_N = 1 << 20
MAX_SCRYPT_R = 32
MAX_SCRYPT_P = 16
SCRYPT_DKLEN = 32  # XSalsa20-Poly1305 key size


@dataclass(frozen=True)
class ScryptParams:
    """Cost parameters for the vault's scrypt key derivation."""
    n: int
    p: int
    r: int = 8
    dklen: int = SCRYPT_DKLEN

    def maxmem(self) -> int:
        # OpenSSL needs 128*r*(n+2) for V plus 128*r*p for B
        return 128 * self.r * (self.n + 2 + self.p) + 1024 * 1024

    def validate(self) -> "ScryptParams":
        """Raise ValueError unless these are costs the vault can open again."""
        for name in ("n", "r", "p", "dklen"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"scrypt {name} must be an int")
        if not (2 <= self.n <= MAX_SCRYPT_N and self.n & (self.n - 1) == 0):
            raise ValueError(f"scrypt n must be a power of two in [2, {MAX_SCRYPT_N}]")
        if not 1 <= self.r <= MAX_SCRYPT_R:
            raise ValueError(f"scrypt r must be in [1, {MAX_SCRYPT_R}]")
        if not 1 <= self.p <= MAX_SCRYPT_P:
            raise ValueError(f"scrypt p must be in [1, {MAX_SCRYPT_P}]")
        if self.dklen != SCRYPT_DKLEN:
            raise ValueError(f"scrypt dklen must be {SCRYPT_DKLEN}")
        return self


# go-ethereum keystore "standard" cost
PRODUCTION_SCRYPT_PARAMS = ScryptParams(n=1 << 18, p=1)
# Same algorithm, trivial cost. Never use outside tests.
TEST_SCRYPT_PARAMS = ScryptParams(n=2, p=1)

KDF_PROFILES = {
    "production": PRODUCTION_SCRYPT_PARAMS,
    "test": TEST_SCRYPT_PARAMS,
}


def configured_scrypt_params() -> ScryptParams:
    """
    Resolve the scrypt cost from config: the named profile, then any explicit
    OCR_SCRYPT_N / OCR_SCRYPT_P override.
    """
    try:
        base = KDF_PROFILES[config.KDF_PROFILE]
    except KeyError:
        raise ValueError(f"unknown KDF profile: {config.KDF_PROFILE!r}") from None

    n = config.SCRYPT_N or base.n
    p = config.SCRYPT_P or base.p
    return ScryptParams(n=n, p=p, r=base.r, dklen=base.dklen)


@dataclass(frozen=True)
class CryptoContext:
    """
    Process-wide algorithm choices. Built once, shared read-only by the
    generator, the signers and the vault.
    """
    curve: Curve = field(default_factory=lambda: SECP256k1)
    address_length: int = 20
    # prefixed to every vault password so OCR key passwords are not
    # interchangeable with other key types
    password_prefix: str = "ocrkey"

    @property
    def order(self) -> int:
        return self.curve.order

    @property
    def scalar_size(self) -> int:
        return self.curve.baselen


DEFAULT_CONTEXT = CryptoContext()
