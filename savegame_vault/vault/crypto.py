"""
Vault Crypto Core — Key derivation and authenticated encryption of save data.

Implements encrypt-then-MAC for the save file envelope:
- Subkeys: SHA-256(master || "AES_KEY") and SHA-256(master || "HMAC_KEY")
- Cipher: AES-256-CBC with PKCS7 padding under a fresh random 16-byte IV
- MAC: HMAC-SHA256 over [version|iv|ciphertext]

Envelope format:
    [version 1B][iv 16B][ciphertext NB][mac 32B]

Security Note:
    Never log plaintext, ciphertext or key material.
    Ciphertext is only decrypted after its MAC has been verified.
"""
import os
from typing import NamedTuple

from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import (
    MasterKeyError,
    IntegrityError,
    AuthenticationError,
    VersionError,
    DataCorruptError,
)

ENVELOPE_VERSION = 1
VERSION_SIZE = 1
IV_SIZE = 16  # AES block size
MAC_SIZE = 32  # HMAC-SHA256
KEY_LENGTH = 32  # AES-256
MIN_ENVELOPE_SIZE = VERSION_SIZE + IV_SIZE + MAC_SIZE

CIPHER_KEY_LABEL = b"AES_KEY"
MAC_KEY_LABEL = b"HMAC_KEY"


class DerivedKeys(NamedTuple):
    cipher_key: bytes
    mac_key: bytes


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def _sha256(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def _check_master(master: bytes) -> None:
    if master is None or len(master) != KEY_LENGTH:
        raise MasterKeyError(
            f"Master key must be exactly {KEY_LENGTH} bytes"
        )


def derive_keys(master: bytes) -> DerivedKeys:
    """Derive the cipher and MAC subkeys from a 32-byte master key.

    Args:
        master: Raw 32-byte master key.

    Returns:
        DerivedKeys with 32-byte ``cipher_key`` and ``mac_key``.

    Raises:
        MasterKeyError: If master is not exactly 32 bytes.
    """
    _check_master(master)
    master = bytes(master)
    return DerivedKeys(
        cipher_key=_sha256(master + CIPHER_KEY_LABEL),
        mac_key=_sha256(master + MAC_KEY_LABEL),
    )


# ---------------------------------------------------------------------------
# MAC helpers
# ---------------------------------------------------------------------------

def compute_mac(mac_key: bytes, data: bytes) -> bytes:
    """Return HMAC-SHA256 of data under mac_key."""
    mac = hmac.HMAC(mac_key, hashes.SHA256())
    mac.update(data)
    return mac.finalize()


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Compare two byte strings without short-circuiting on the first difference."""
    if len(a) != len(b):
        return False
    diff = 0
    for x, y in zip(a, b):
        diff |= x ^ y
    return diff == 0


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt(plaintext: bytes, master: bytes) -> bytes:
    """Encrypt plaintext into a versioned, authenticated envelope.

    Args:
        plaintext: Data to encrypt, any length including zero.
        master: Raw 32-byte master key.

    Returns:
        Envelope bytes ``[version][iv][ciphertext][mac]``.
    """
    keys = derive_keys(master)
    iv = os.urandom(IV_SIZE)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext or b"") + padder.finalize()
    encryptor = Cipher(algorithms.AES(keys.cipher_key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    body = bytes([ENVELOPE_VERSION]) + iv + ciphertext
    return body + compute_mac(keys.mac_key, body)


def decrypt(envelope: bytes, master: bytes) -> bytes:
    """Verify and decrypt an envelope produced by :func:`encrypt`.

    Args:
        envelope: Envelope bytes ``[version][iv][ciphertext][mac]``.
        master: Raw 32-byte master key.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        IntegrityError: If the envelope is shorter than the minimum size.
        MasterKeyError: If master is not exactly 32 bytes.
        AuthenticationError: If the MAC does not match.
        VersionError: If the version byte is not supported.
        DataCorruptError: If the ciphertext or its padding is invalid.
    """
    if envelope is None or len(envelope) < MIN_ENVELOPE_SIZE:
        raise IntegrityError(
            f"Envelope too short: {0 if envelope is None else len(envelope)} "
            f"bytes (minimum {MIN_ENVELOPE_SIZE})"
        )
    keys = derive_keys(master)

    body = envelope[:-MAC_SIZE]
    mac = envelope[-MAC_SIZE:]
    if not constant_time_equals(compute_mac(keys.mac_key, body), mac):
        raise AuthenticationError(
            "Save data tampered or corrupted (MAC mismatch)"
        )

    version = body[0]
    if version != ENVELOPE_VERSION:
        raise VersionError(f"Unsupported envelope version: {version}")

    iv = body[VERSION_SIZE:VERSION_SIZE + IV_SIZE]
    ciphertext = body[VERSION_SIZE + IV_SIZE:]
    try:
        decryptor = Cipher(algorithms.AES(keys.cipher_key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as err:
        raise DataCorruptError(f"Invalid ciphertext: {err}") from err
