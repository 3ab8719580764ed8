"""AES-CFB encryption of send-message sub-messages."""

from __future__ import annotations

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from ..exceptions import EncryptionError

KEY_SIZE = 16
IV_SIZE = 16


def _cipher(key: bytes, iv: bytes) -> Cipher:
    if len(key) != KEY_SIZE:
        raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    return Cipher(algorithms.AES(bytes(key)), CFB(bytes(iv)))


def encrypt(key: bytes, iv: bytes, cleartext: bytes) -> bytes:
    """Encrypt with AES in 128-bit cipher feedback mode, without padding.

    The ciphertext is exactly as long as ``cleartext``.

    Args:
        key: 16-byte AES key from the pump session.
        iv: 16-byte initialisation vector from the pump session.
        cleartext: A complete sub-message, checksum included.

    Raises:
        EncryptionError: If the cipher cannot be set up or fails to process
            the input (wrong key/IV size, unusable backend).
    """
    try:
        encryptor = _cipher(key, iv).encryptor()
        return encryptor.update(bytes(cleartext)) + encryptor.finalize()
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionError(f"Could not encrypt pump message: {e}") from e


def decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    """Inverse of :func:`encrypt`."""
    try:
        decryptor = _cipher(key, iv).decryptor()
        return decryptor.update(bytes(ciphertext)) + decryptor.finalize()
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionError(f"Could not decrypt pump message: {e}") from e
