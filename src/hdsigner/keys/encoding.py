"""
Key and signature text encodings.

Covers the legacy WIF private key format, the ``EOS...`` / ``PUB_K1_...``
public key formats and the ``SIG_K1_...`` signature format.
"""

from typing import Tuple

import base58
from bip_utils import EosAddrDecoder, EosAddrEncoder, Secp256k1PrivateKey
from Crypto.Hash import RIPEMD160

from hdsigner.errors import InvalidPrivateKey, InvalidWIF

WIF_VERSION = 0x80
PRIVATE_KEY_LENGTH = 32
COMPRESSED_PUBLIC_KEY_LENGTH = 33
SIGNATURE_LENGTH = 65

LEGACY_PUBLIC_PREFIX = "EOS"
K1_PUBLIC_PREFIX = "PUB_K1_"
K1_PRIVATE_PREFIX = "PVT_K1_"
K1_SIGNATURE_PREFIX = "SIG_K1_"


def ripemd160(data: bytes) -> bytes:
    return RIPEMD160.new(data).digest()


def _k1_checksum(payload: bytes) -> bytes:
    return ripemd160(payload + b"K1")[:4]


def _encode_k1(prefix: str, payload: bytes) -> str:
    return prefix + base58.b58encode(payload + _k1_checksum(payload)).decode()


def _decode_k1(prefix: str, text: str, length: int) -> bytes:
    if not text.startswith(prefix):
        raise ValueError(f"expected {prefix} prefix")
    raw = base58.b58decode(text[len(prefix):])
    payload, checksum = raw[:-4], raw[-4:]
    if len(payload) != length:
        raise ValueError(f"expected {length} bytes, got {len(payload)}")
    if _k1_checksum(payload) != checksum:
        raise ValueError("checksum mismatch")
    return payload


# Private keys

def is_valid_private_key(key: bytes) -> bool:
    """Check that 32 bytes form a secp256k1 scalar in [1, n)."""
    return len(key) == PRIVATE_KEY_LENGTH and Secp256k1PrivateKey.IsValidBytes(key)


def wif_encode(key: bytes) -> str:
    """Encode a raw private key as legacy (uncompressed-flag) WIF."""
    if len(key) != PRIVATE_KEY_LENGTH:
        raise InvalidPrivateKey(f"Private key must be {PRIVATE_KEY_LENGTH} bytes")
    return base58.b58encode_check(bytes([WIF_VERSION]) + key).decode()


def wif_decode(text: str) -> bytes:
    """
    Decode a WIF (or ``PVT_K1_``) private key into its 32 raw bytes.

    Raises:
        InvalidWIF: If the text is not a well-formed key encoding
        InvalidPrivateKey: If the decoded bytes are not a valid scalar
    """
    if not isinstance(text, str) or not text:
        raise InvalidWIF("WIF private key must be a non-empty string", field="private_key")

    if text.startswith(K1_PRIVATE_PREFIX):
        try:
            key = _decode_k1(K1_PRIVATE_PREFIX, text, PRIVATE_KEY_LENGTH)
        except ValueError as e:
            raise InvalidWIF(f"Malformed private key: {e}", field="private_key") from e
    else:
        try:
            payload = base58.b58decode_check(text)
        except ValueError as e:
            raise InvalidWIF(f"Malformed WIF: {e}", field="private_key") from e

        if not payload or payload[0] != WIF_VERSION:
            raise InvalidWIF("Unexpected WIF version byte", field="private_key")

        key = payload[1:]
        # Compressed-flag variant carries a trailing 0x01
        if len(key) == PRIVATE_KEY_LENGTH + 1 and key[-1] == 0x01:
            key = key[:-1]
        if len(key) != PRIVATE_KEY_LENGTH:
            raise InvalidWIF(
                f"WIF payload must hold {PRIVATE_KEY_LENGTH} bytes, got {len(key)}",
                field="private_key",
            )

    if not is_valid_private_key(key):
        raise InvalidPrivateKey("Decoded bytes are not a valid secp256k1 private key",
                                field="private_key")
    return key


def private_key_to_k1(key: bytes) -> str:
    return _encode_k1(K1_PRIVATE_PREFIX, key)


# Public keys

def public_key_from_private(key: bytes) -> bytes:
    """Compressed 33-byte public point of a private key."""
    return Secp256k1PrivateKey.FromBytes(key).PublicKey().RawCompressed().ToBytes()


def public_key_to_text(public_key: bytes, prefix: str = LEGACY_PUBLIC_PREFIX) -> str:
    """Encode a compressed public key as ``EOS...`` or ``PUB_K1_...`` text."""
    if prefix == K1_PUBLIC_PREFIX:
        return _encode_k1(K1_PUBLIC_PREFIX, public_key)
    if prefix != LEGACY_PUBLIC_PREFIX:
        raise ValueError(f"Unsupported public key prefix: {prefix}")
    return EosAddrEncoder.EncodeKey(public_key)


def public_key_from_text(text: str) -> bytes:
    """Decode ``EOS...`` or ``PUB_K1_...`` text to the 33-byte compressed key."""
    if text.startswith(K1_PUBLIC_PREFIX):
        return _decode_k1(K1_PUBLIC_PREFIX, text, COMPRESSED_PUBLIC_KEY_LENGTH)
    return EosAddrDecoder.DecodeAddr(text)


# Signatures

def signature_to_text(signature: bytes) -> str:
    """Encode a 65-byte compact signature (recovery header + r + s)."""
    if len(signature) != SIGNATURE_LENGTH:
        raise ValueError(f"Signature must be {SIGNATURE_LENGTH} bytes")
    return _encode_k1(K1_SIGNATURE_PREFIX, signature)


def signature_from_text(text: str) -> Tuple[int, bytes]:
    """
    Decode ``SIG_K1_...`` text.

    Returns:
        Tuple of (recovery id, 64-byte r || s)
    """
    raw = _decode_k1(K1_SIGNATURE_PREFIX, text, SIGNATURE_LENGTH)
    return raw[0] - 31, raw[1:]
