"""Short-code generation."""

from __future__ import annotations

from .generator import BASE62_ALPHABET, CodeGenerator, encode_base62

__all__ = ["BASE62_ALPHABET", "CodeGenerator", "encode_base62"]
