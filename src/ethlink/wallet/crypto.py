"""
AES-CBC helpers for opaque blobs at rest (wallet seeds, mostly).

The key is a user-chosen secret of 1-32 bytes, left-padded with ASCII '0'
up to the nearest AES key size. The IV is the first block of the padded key,
which keeps blobs byte-compatible with those written by older tooling.
"""

from __future__ import annotations

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

BLOCK_SIZE = 16


class CryptoError(ValueError):
    pass


def _padding_left(data: bytes, pad: bytes, length: int) -> bytes:
    if len(data) >= length:
        return data[:length]
    return pad * (length - len(data)) + data


def _normalize_key(key: bytes) -> bytes:
    if not key or len(key) > 32:
        raise CryptoError("key is empty or longer than 32 bytes; key length must be in (0, 32]")
    if len(key) <= 16:
        return _padding_left(key, b"0", 16)
    if len(key) <= 24:
        return _padding_left(key, b"0", 24)
    return _padding_left(key, b"0", 32)


def pkcs7_pad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    padder = padding.PKCS7(block_size * 8).padder()
    return padder.update(data) + padder.finalize()


def pkcs7_unpad(data: bytes, block_size: int = BLOCK_SIZE) -> bytes:
    unpadder = padding.PKCS7(block_size * 8).unpadder()
    try:
        return unpadder.update(data) + unpadder.finalize()
    except ValueError as exc:
        raise CryptoError("Decryption failed: invalid padding or wrong key") from exc


def aes_cbc_encrypt(data: bytes, key: bytes) -> bytes:
    key = _normalize_key(key)
    encryptor = Cipher(algorithms.AES(key), modes.CBC(key[:BLOCK_SIZE])).encryptor()
    return encryptor.update(pkcs7_pad(data)) + encryptor.finalize()


def aes_cbc_decrypt(encrypted: bytes, key: bytes) -> bytes:
    key = _normalize_key(key)
    if not encrypted or len(encrypted) % BLOCK_SIZE:
        raise CryptoError(f"ciphertext length must be a non-zero multiple of {BLOCK_SIZE}")
    decryptor = Cipher(algorithms.AES(key), modes.CBC(key[:BLOCK_SIZE])).decryptor()
    return pkcs7_unpad(decryptor.update(encrypted) + decryptor.finalize())
