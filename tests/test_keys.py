# tests/test_keys.py

import pickle

import pytest
from nacl.signing import VerifyKey

from ocr_keys.context import DEFAULT_CONTEXT
from ocr_keys.errors import InvalidPeerPointError
from ocr_keys.exchange import ConfigEncryptionKey
from ocr_keys.offchain import OffChainSigningKey, verify_off_chain
from ocr_keys.onchain import (
    OnChainSigningKey,
    address_from_public_key,
    keccak256,
    recover_address,
    verify_on_chain,
)

MESSAGES = [b"", b"hello", b"x" * 10_000]


class TestKeccak:
    def test_empty_vector(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_not_nist_sha3(self):
        import hashlib
        assert keccak256(b"abc") != hashlib.sha3_256(b"abc").digest()


class TestOnChainSigningKey:
    def test_known_address(self):
        # private key 1 -> generator point; well-known Ethereum address
        key = OnChainSigningKey(1)
        assert key.address() == "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"

    def test_address_is_checksummed_hex(self):
        key = OnChainSigningKey(123456789)
        addr = key.address()
        assert addr.startswith("0x")
        assert len(addr) == 42
        assert addr == address_from_public_key(key.public_key())

    def test_scalar_range(self):
        with pytest.raises(ValueError):
            OnChainSigningKey(0)
        with pytest.raises(ValueError):
            OnChainSigningKey(DEFAULT_CONTEXT.order)

    @pytest.mark.parametrize("message", MESSAGES)
    def test_sign_and_verify(self, message):
        key = OnChainSigningKey(0xC0FFEE)
        sig = key.sign(message)
        assert len(sig) == 65
        assert sig[64] in (0, 1)
        assert verify_on_chain(key.address(), message, sig)
        assert recover_address(message, sig) == key.address()

    def test_signature_is_low_s(self):
        key = OnChainSigningKey(0xBEEF)
        for i in range(20):
            sig = key.sign(f"msg-{i}".encode())
            s = int.from_bytes(sig[32:64], "big")
            assert s <= DEFAULT_CONTEXT.order // 2

    def test_signing_is_deterministic(self):
        key = OnChainSigningKey(42)
        assert key.sign(b"hello") == key.sign(b"hello")

    def test_wrong_message_fails(self):
        key = OnChainSigningKey(42)
        sig = key.sign(b"hello")
        assert not verify_on_chain(key.address(), b"goodbye", sig)

    def test_wrong_address_fails(self):
        key = OnChainSigningKey(42)
        other = OnChainSigningKey(43)
        sig = key.sign(b"hello")
        assert not verify_on_chain(other.address(), b"hello", sig)

    def test_high_s_rejected(self):
        key = OnChainSigningKey(42)
        sig = key.sign(b"hello")
        s = int.from_bytes(sig[32:64], "big")
        high = sig[:32] + (DEFAULT_CONTEXT.order - s).to_bytes(32, "big") + bytes([sig[64] ^ 1])
        assert not verify_on_chain(key.address(), b"hello", high)

    def test_malformed_signature_rejected(self):
        key = OnChainSigningKey(42)
        assert not verify_on_chain(key.address(), b"hello", b"\x00" * 64)
        sig = key.sign(b"hello")
        assert not verify_on_chain(key.address(), b"hello", sig[:64] + b"\x05")
        with pytest.raises(ValueError):
            recover_address(b"hello", sig[:10])

    def test_from_raw_checks_point(self):
        key = OnChainSigningKey(42)
        x, y = key.point
        assert OnChainSigningKey.from_raw(42, x, y).address() == key.address()
        with pytest.raises(ValueError):
            OnChainSigningKey.from_raw(42, x, y + 1)

    def test_repr_and_pickle(self):
        key = OnChainSigningKey(0xDEADBEEF)
        assert "deadbeef" not in repr(key).lower()
        with pytest.raises(TypeError):
            pickle.dumps(key)


class TestOffChainSigningKey:
    @pytest.mark.parametrize("message", MESSAGES)
    def test_sign_and_verify(self, message):
        key = OffChainSigningKey(b"\x01" * 32)
        sig = key.sign(message)
        assert len(sig) == 64
        assert verify_off_chain(key.public_key(), message, sig)
        # interoperable with a plain Ed25519 verifier
        VerifyKey(key.public_key()).verify(message, sig)

    def test_public_key_size(self):
        assert len(OffChainSigningKey(b"\x02" * 32).public_key()) == 32

    def test_wrong_message_fails(self):
        key = OffChainSigningKey(b"\x03" * 32)
        sig = key.sign(b"hello")
        assert not verify_off_chain(key.public_key(), b"hellO", sig)

    def test_wrong_key_fails(self):
        key = OffChainSigningKey(b"\x03" * 32)
        other = OffChainSigningKey(b"\x04" * 32)
        assert not verify_off_chain(other.public_key(), b"hello", key.sign(b"hello"))

    def test_private_bytes_layout(self):
        seed = b"\x05" * 32
        key = OffChainSigningKey(seed)
        assert key.private_bytes() == seed + key.public_key()
        again = OffChainSigningKey.from_private_bytes(key.private_bytes())
        assert again.public_key() == key.public_key()

    def test_bad_sizes(self):
        with pytest.raises(ValueError):
            OffChainSigningKey(b"\x00" * 31)
        with pytest.raises(ValueError):
            OffChainSigningKey.from_private_bytes(b"\x00" * 32)


class TestConfigEncryptionKey:
    # RFC 7748 section 6.1
    ALICE_PRIV = bytes.fromhex("77076d0a7318a57d3c16c17251b26645df4c2f87ebc0992ab177fba51db92c2a")
    ALICE_PUB = bytes.fromhex("8520f0098930a754748b7ddcb43ef75a0dbf3a0d26381af4eba4a98eaa9b4e6a")
    BOB_PRIV = bytes.fromhex("5dab087e624a8a4b79e17f8b83800ee66f3bb1292618b6fd1c2f8b27ff88e0eb")
    BOB_PUB = bytes.fromhex("de9edb7d7b7dc1b4d35b61c2ece435373f8343c85b78674dadfc7e146f882b4f")
    SHARED = bytes.fromhex("4a5d9d5ba4ce2de1728e3bf480350f25e07e21c947d19e3376f09b3c1e161742")

    def test_rfc7748_vectors(self):
        alice = ConfigEncryptionKey(self.ALICE_PRIV)
        bob = ConfigEncryptionKey(self.BOB_PRIV)
        assert alice.public_key() == self.ALICE_PUB
        assert bob.public_key() == self.BOB_PUB
        assert alice.shared_secret(self.BOB_PUB) == self.SHARED
        assert bob.shared_secret(self.ALICE_PUB) == self.SHARED

    @pytest.mark.parametrize("point", [
        bytes(32),                                    # u = 0
        b"\x01" + bytes(31),                          # u = 1
        bytes.fromhex("ec" + "ff" * 30 + "7f"),       # u = p - 1
    ])
    def test_low_order_points_rejected(self, point):
        key = ConfigEncryptionKey(self.ALICE_PRIV)
        with pytest.raises(InvalidPeerPointError):
            key.shared_secret(point)

    def test_malformed_peer_rejected(self):
        key = ConfigEncryptionKey(self.ALICE_PRIV)
        with pytest.raises(InvalidPeerPointError):
            key.shared_secret(b"\x09" * 31)
        with pytest.raises(InvalidPeerPointError):
            key.shared_secret("not bytes")

    def test_scalar_size(self):
        with pytest.raises(ValueError):
            ConfigEncryptionKey(b"\x00" * 16)

    def test_repr_hides_scalar(self):
        key = ConfigEncryptionKey(self.ALICE_PRIV)
        assert self.ALICE_PRIV.hex() not in repr(key)
        assert self.ALICE_PUB.hex() in repr(key)
