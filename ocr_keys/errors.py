# ocr_keys/errors.py
#
# None of these messages may carry key bytes. Callers format them with ids,
# addresses and public keys only.


class KeyBundleError(Exception):
    """Base class for every error raised by the key bundle core."""
    pass


class EntropyError(KeyBundleError):
    """The random source failed or returned short output during generation."""
    pass


class InvalidPeerPointError(KeyBundleError):
    """A peer X25519 public key was malformed or a low-order point."""
    pass


class EncryptionError(KeyBundleError):
    """Serializing or encrypting a bundle failed. No artifact was produced."""
    pass


class DecryptionError(KeyBundleError):
    """
    The container could not be authenticated or decoded.

    Raised identically for a wrong password and for corrupted or tampered
    data.
    """
    pass


class UnsupportedFormatError(KeyBundleError):
    """The container declares a format version this code does not know."""
    pass


class KeyNotFoundError(KeyBundleError, KeyError):
    """No encrypted bundle is stored under the requested id."""
    pass
