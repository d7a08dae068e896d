"""Unit tests for short-code derivation."""

from __future__ import annotations

import pytest

from compactify.services.codes import BASE62_ALPHABET, CodeGenerator, encode_base62


def test_encode_base62_pads_to_length():
    assert encode_base62(0, 4) == "0000"
    assert encode_base62(61, 3) == "00z"
    assert encode_base62(62, 3) == "010"


@pytest.mark.parametrize("value,length", [(-1, 4), (1, 0)])
def test_encode_base62_rejects_bad_input(value, length):
    with pytest.raises(ValueError):
        encode_base62(value, length)


def test_first_attempt_is_deterministic():
    """Attempt 0 depends on the seed only, never on the clock."""
    a = CodeGenerator(clock=lambda: 1)
    b = CodeGenerator(clock=lambda: 2)
    assert a.generate("https://example.com") == b.generate("https://example.com")


def test_codes_have_fixed_length_and_alphabet():
    gen = CodeGenerator(length=8)
    for attempt in range(5):
        code = gen.generate("https://example.com/x", attempt)
        assert len(code) == 8
        assert set(code) <= set(BASE62_ALPHABET)


def test_retries_are_salted_by_attempt_and_clock():
    gen = CodeGenerator(clock=lambda: 1_000)
    first = gen.generate("https://example.com", 0)
    second = gen.generate("https://example.com", 1)
    third = gen.generate("https://example.com", 2)
    assert len({first, second, third}) == 3

    later = CodeGenerator(clock=lambda: 2_000)
    assert later.generate("https://example.com", 1) != second


def test_different_seeds_differ():
    gen = CodeGenerator()
    assert gen.generate("https://a.example") != gen.generate("https://b.example")


def test_negative_attempt_rejected():
    with pytest.raises(ValueError):
        CodeGenerator().generate("x", -1)
