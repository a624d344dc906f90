"""Ed25519 key and signature helpers built on PyNaCl."""
from __future__ import annotations

import base64
import binascii

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64


def _decode_base64(data: str) -> bytes:
    """Decode standard or URL-safe base64, accepting omitted padding."""
    padding = "=" * (-len(data) % 4)
    altchars = b"-_" if ("-" in data or "_" in data) else None
    try:
        return base64.b64decode(data + padding, altchars=altchars, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"Invalid base64 encoding: {err}") from err


def _decode_hex(data: str) -> bytes:
    try:
        return bytes.fromhex(data)
    except ValueError as err:
        raise ValueError(f"Invalid hex encoding: {err}") from err


def decode_fixed_length(encoded: str, length: int, label: str) -> bytes:
    """Decode a hex or base64 value that must be exactly ``length`` bytes.

    Hex is tried first because every hex string of the right size is also
    valid base64 of a different size.

    Args:
        encoded: Text as received from a client or the key directory.
        length: Required size of the decoded value in bytes.
        label: Human readable name used in error messages.

    Returns:
        The decoded bytes.

    Raises:
        ValueError: If no decoding yields ``length`` bytes.
    """
    cleaned = encoded.strip()
    errors: list[str] = []
    for decoder in (_decode_hex, _decode_base64):
        try:
            result = decoder(cleaned)
        except ValueError as err:
            errors.append(str(err))
            continue
        if len(result) != length:
            errors.append(f"{label} must be {length} bytes")
            continue
        return result
    joined = "; ".join(errors) if errors else "unknown decoding error"
    raise ValueError(f"Invalid {label} format: {joined}")


def decode_public_key(encoded: str) -> bytes:
    """Decode an Ed25519 public key given as hex or base64."""
    return decode_fixed_length(encoded, PUBKEY_LENGTH_BYTES, "public key")


def decode_signature(encoded: str) -> bytes:
    """Decode a detached Ed25519 signature given as hex or base64."""
    return decode_fixed_length(encoded, SIGNATURE_LENGTH_BYTES, "signature")


def verify_signature_bytes(pubkey_bytes: bytes, message: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature over raw bytes.

    Args:
        pubkey_bytes: Raw 32-byte public key.
        message: Exact bytes that were signed on the client.
        signature: Raw 64-byte detached signature.

    Returns:
        True if the signature is valid for `message` under `pubkey_bytes`; False otherwise.
    """
    try:
        VerifyKey(pubkey_bytes).verify(message, signature)
        return True
    except (BadSignatureError, ValueError):
        return False
