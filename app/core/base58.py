"""
Base58 codec (Bitcoin / Solana alphabet)

Solana public keys (32 bytes) and ed25519 signatures (64 bytes) travel as base58
strings. The decoder works on inputs of any length and keeps leading zero bytes,
which base58 represents as leading '1' characters.
"""

import math

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: i for i, char in enumerate(ALPHABET)}


class InvalidCharacter(ValueError):
    """Raised when a string contains a character outside the base58 alphabet."""

    def __init__(self, char: str, position: int):
        self.char = char
        self.position = position
        super().__init__(f"Invalid base58 character {char!r} at position {position}")


def _leading(sequence, zero) -> int:
    count = 0
    for item in sequence:
        if item != zero:
            break
        count += 1
    return count


def decode(value: str) -> bytes:
    """
    Decode a base58 string into raw bytes.

    The big-endian buffer is sized to ceil(len * log(58) / log(256)); every input
    digit multiplies the buffer by 58 and adds the digit, carrying from the least
    significant byte upwards.

    Raises:
        InvalidCharacter: If a character is not part of the alphabet
    """
    size = math.ceil(len(value) * math.log(58) / math.log(256))
    buffer = bytearray(size)

    for position, char in enumerate(value):
        carry = _INDEX.get(char)
        if carry is None:
            raise InvalidCharacter(char, position)
        for i in range(size - 1, -1, -1):
            carry += buffer[i] * 58
            buffer[i] = carry & 0xFF
            carry >>= 8
        if carry:
            # the size estimate is an upper bound, so this cannot happen for valid input
            raise ValueError("base58 buffer overflow")

    zeros = _leading(value, "1")
    return b"\x00" * zeros + bytes(buffer[_leading(buffer, 0):])


def encode(data: bytes) -> str:
    """Encode raw bytes as base58. One '1' is emitted per leading zero byte."""
    zeros = _leading(data, 0)
    number = int.from_bytes(data, "big")

    digits = []
    while number > 0:
        number, remainder = divmod(number, 58)
        digits.append(ALPHABET[remainder])

    return "1" * zeros + "".join(reversed(digits))


def is_valid(value: str) -> bool:
    """Helper: True if the string only uses base58 characters."""
    return all(char in _INDEX for char in value)
