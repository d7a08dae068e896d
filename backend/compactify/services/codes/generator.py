"""
Short-code derivation.

Codes are a SHA-256 digest of the original URL reduced to a fixed-length
base62 string. Attempt ``0`` is a pure function of the seed, so the same URL
yields the same first candidate in every process. Later attempts salt the
seed with the attempt number and the wall clock read at generation time.
"""

from __future__ import annotations

import hashlib
import string
import time
from collections.abc import Callable
from dataclasses import dataclass, field

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


def encode_base62(value: int, length: int) -> str:
    """
    Render ``value`` in base62, left-padded with ``"0"`` to ``length`` chars.

    :param value: Non-negative integer, expected below ``62 ** length``.
    :param length: Output width.
    :returns: Base62 string of exactly ``length`` characters.
    :raises ValueError: If ``value`` is negative or ``length`` is not positive.
    """
    if value < 0:
        raise ValueError("value must be non-negative")
    if length <= 0:
        raise ValueError("length must be positive")

    base = len(BASE62_ALPHABET)
    chars: list[str] = []
    while value:
        value, rem = divmod(value, base)
        chars.append(BASE62_ALPHABET[rem])
    encoded = "".join(reversed(chars))
    return encoded.rjust(length, BASE62_ALPHABET[0])[-length:]


@dataclass(frozen=True, slots=True)
class CodeGenerator:
    """
    Deterministic short-code generator.

    :param length: Number of base62 characters per code.
    :param clock: Nanosecond wall clock used to salt retries.
    """

    length: int = 8
    clock: Callable[[], int] = field(default=time.time_ns)

    def generate(self, seed: str, attempt: int = 0) -> str:
        """
        Derive a candidate code for ``seed``.

        :param seed: Usually the original URL.
        :param attempt: Zero-based retry index.
        :returns: Base62 code of :attr:`length` characters.
        """
        if attempt < 0:
            raise ValueError("attempt must be >= 0")

        material = seed if attempt == 0 else f"{seed}#{attempt}@{self.clock()}"
        digest = hashlib.sha256(material.encode("utf-8")).digest()
        value = int.from_bytes(digest, "big") % (62**self.length)
        return encode_base62(value, self.length)
