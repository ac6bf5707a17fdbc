"""
Solana Wallet Signature Utilities

Solana wallets sign with ED25519 and the wallet address *is* the base58 encoded
public key, so verifying a signature under the address also proves the key matches
the address (no separate key/address check is needed).

Two callers:
- the client runs verify_signature() right after the wallet bridge signs, to fail fast
  on a broken bridge before any network round-trip (never authoritative)
- the credential exchange service runs verify_signed_message() on every POST /auth
"""

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from app.core import base58

PUBLIC_KEY_NUM_BYTES = 32
SIGNATURE_NUM_BYTES = 64
# longest base58 renderings of 32 and 64 bytes; longer input is rejected before decoding
MAX_PUBLIC_KEY_CHARS = 44
MAX_SIGNATURE_CHARS = 88


def _load_public_key(public_key_bytes: bytes) -> Ed25519PublicKey:
    """Helper: Build an ED25519 public key, rejecting wrong lengths."""
    if len(public_key_bytes) != PUBLIC_KEY_NUM_BYTES:
        raise ValueError(f"Public key must be {PUBLIC_KEY_NUM_BYTES} bytes")
    return Ed25519PublicKey.from_public_bytes(public_key_bytes)


def verify_signature(message: bytes, signature: bytes, public_key: str) -> bool:
    """
    Verify an ED25519 signature against a base58 wallet address.

    Args:
        message: The exact bytes handed to the wallet for signing
        signature: Raw 64-byte signature returned by the wallet
        public_key: Wallet address (base58 public key)

    Returns:
        True if the signature is valid, False otherwise (including malformed keys)
    """
    if len(signature) != SIGNATURE_NUM_BYTES or len(public_key) > MAX_PUBLIC_KEY_CHARS:
        return False
    try:
        key = _load_public_key(base58.decode(public_key))
        key.verify(signature, message)
    except (InvalidSignature, ValueError):
        return False
    return True


def verify_signed_message(wallet_address: str, message: str, signature: str) -> bool:
    """
    Verify a base58 signature over a plaintext message.

    The message is UTF-8 encoded; signature and wallet_address are decoded as base58.
    Any decoding failure counts as an invalid signature.
    """
    if len(signature) > MAX_SIGNATURE_CHARS or len(wallet_address) > MAX_PUBLIC_KEY_CHARS:
        return False
    try:
        signature_bytes = base58.decode(signature)
    except ValueError:
        return False
    return verify_signature(message.encode("utf-8"), signature_bytes, wallet_address)
