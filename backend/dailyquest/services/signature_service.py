"""
Wallet signature verification.

Solana wallets sign with Ed25519. The public key is the wallet address
(base58, 32 bytes); the signature is 64 bytes, sent either base58 encoded or
as the comma-separated byte list a browser ``Uint8Array`` stringifies to.
"""

import re

import base58
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64

_BYTE_LIST_RE = re.compile(r"\d{1,3}(,\d{1,3})*")


def decode_public_key(public_key: str) -> bytes:
    """Decode a base58 wallet address. Raises ValueError if malformed."""
    if not isinstance(public_key, str) or not public_key:
        raise ValueError("Wallet address must be a non-empty string")
    key_bytes = base58.b58decode(public_key)
    if len(key_bytes) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"Wallet address must decode to {PUBLIC_KEY_LENGTH} bytes")
    return key_bytes


def is_valid_wallet_address(address: str) -> bool:
    try:
        decode_public_key(address)
    except ValueError:
        return False
    return True


def decode_signature(signature: str) -> bytes:
    """
    Strictly decode a signature string.

    Rejects whitespace, out-of-range byte values and any length other than 64.
    """
    if not isinstance(signature, str) or not signature:
        raise ValueError("Signature must be a non-empty string")

    if "," in signature:
        if not _BYTE_LIST_RE.fullmatch(signature):
            raise ValueError("Signature byte list is malformed")
        values = [int(part) for part in signature.split(",")]
        if any(value > 255 for value in values):
            raise ValueError("Signature byte out of range")
        sig_bytes = bytes(values)
    else:
        sig_bytes = base58.b58decode(signature)

    if len(sig_bytes) != SIGNATURE_LENGTH:
        raise ValueError(f"Signature must be {SIGNATURE_LENGTH} bytes")
    return sig_bytes


def verify(message: str, signature: str, public_key: str) -> bool:
    """
    Verify a wallet's Ed25519 signature over ``message``.

    Returns False for malformed input as well as for a bad signature.
    """
    try:
        verify_key = VerifyKey(decode_public_key(public_key))
        verify_key.verify(message.encode("utf-8"), decode_signature(signature))
    except (BadSignatureError, CryptoError, ValueError, TypeError):
        return False
    return True
