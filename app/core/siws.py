"""
Sign-In With Solana (SIWS) challenge builder

The client builds a plaintext challenge, asks the wallet bridge to sign its UTF-8
bytes and sends the message with the signature to POST /auth. The server checks the
signature and that the message contains the claimed wallet address, so the line
layout below is part of the wire contract.

Layout:
    {domain} wants you to sign in with your Solana account:
    {address}

    {statement}

    URI: https://{domain}
    Version: 1
    Chain ID: mainnet
    Nonce: {nonce}
    Issued At: {issued_at}
    Expiration Time: {expiration_time}   <- only when supplied
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.core import base58
from app.core.config import settings

NONCE_NUM_BYTES = 16  # 128 bits of entropy
SIWS_VERSION = "1"
SIWS_CHAIN_ID = "mainnet"

_INVITATION = " wants you to sign in with your Solana account:"


@dataclass(frozen=True)
class Challenge:
    """An immutable SIWS challenge, one per connection attempt."""

    domain: str
    address: str
    nonce: str
    statement: str
    issued_at: str
    expiration_time: Optional[str] = None

    def to_message(self) -> str:
        lines = [
            f"{self.domain}{_INVITATION}",
            self.address,
            "",
            self.statement,
            "",
            f"URI: https://{self.domain}",
            f"Version: {SIWS_VERSION}",
            f"Chain ID: {SIWS_CHAIN_ID}",
            f"Nonce: {self.nonce}",
            f"Issued At: {self.issued_at}",
        ]
        if self.expiration_time:
            lines.append(f"Expiration Time: {self.expiration_time}")
        return "\n".join(lines)


def isoformat_utc(moment: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds, e.g. 2024-01-01T12:00:00.000Z"""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_iso_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing 'Z' is accepted as UTC."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """
    Generate a cryptographically secure random nonce, base58 encoded.

    Args:
        num_bytes: Number of random bytes, never fewer than 16

    Returns:
        Base58 string of the random bytes
    """
    num_bytes = max(num_bytes, NONCE_NUM_BYTES)
    return base58.encode(secrets.token_bytes(num_bytes))


def build_challenge(
    address: str,
    nonce: str,
    issued_at: Optional[str] = None,
    expiration_time: Optional[str] = None,
    statement: Optional[str] = None,
    domain: Optional[str] = None,
) -> Challenge:
    return Challenge(
        domain=domain or settings.SIWS_DOMAIN,
        address=address,
        nonce=nonce,
        statement=statement or settings.SIWS_STATEMENT,
        issued_at=issued_at or isoformat_utc(datetime.now(timezone.utc)),
        expiration_time=expiration_time,
    )


def build_siws_message(
    address: str,
    nonce: str,
    issued_at: Optional[str] = None,
    expiration_time: Optional[str] = None,
    statement: Optional[str] = None,
    domain: Optional[str] = None,
) -> str:
    """
    Build the plaintext SIWS message for a wallet address.

    Example:
        message = build_siws_message(address="7xKX...", nonce=generate_nonce())
        signature = await bridge.sign_bytes(auth_token, encode_siws_message(message))
    """
    return build_challenge(
        address,
        nonce,
        issued_at=issued_at,
        expiration_time=expiration_time,
        statement=statement,
        domain=domain,
    ).to_message()


def is_siws_message(message: str) -> bool:
    """True when the first line is a SIWS invitation line."""
    return message.split("\n", 1)[0].endswith(_INVITATION)


def encode_siws_message(message: str) -> bytes:
    """Encode a SIWS message to the bytes handed to the wallet for signing."""
    return message.encode("utf-8")


def parse_siws_message(message: str) -> Challenge:
    """
    Parse a message produced by build_siws_message back into a Challenge.

    Raises:
        ValueError: If the message does not follow the SIWS layout
    """
    lines = message.split("\n")
    if len(lines) < 10 or not lines[0].endswith(_INVITATION):
        raise ValueError("Not a SIWS message")

    # the statement may span lines; the key/value block starts at the last URI line
    uri_index = next(
        (i for i in range(len(lines) - 1, 4, -1) if lines[i].startswith("URI: ")),
        None,
    )
    if uri_index is None or lines[2] or lines[uri_index - 1]:
        raise ValueError("Malformed SIWS message")

    fields = {}
    for line in lines[uri_index:]:
        key, sep, value = line.partition(": ")
        if not sep:
            raise ValueError(f"Malformed SIWS line: {line!r}")
        fields[key] = value

    try:
        return Challenge(
            domain=lines[0][: -len(_INVITATION)],
            address=lines[1],
            nonce=fields["Nonce"],
            statement="\n".join(lines[3:uri_index - 1]),
            issued_at=fields["Issued At"],
            expiration_time=fields.get("Expiration Time"),
        )
    except KeyError as e:
        raise ValueError(f"SIWS message is missing {e.args[0]}")
