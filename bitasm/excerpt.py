"""Conversion of number and string token excerpts into values."""

from __future__ import annotations

from typing import Iterator, Optional

from bitasm.tokens import AsmError, Span

_USIZE_MAX = 2**64 - 1
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_digit(c: Optional[str], radix: int) -> Optional[int]:
    if c is None or not c.isascii():
        return None
    value = _DIGITS.find(c.lower())
    if value < 0 or value >= radix:
        return None
    return value


def _parse_radix(excerpt: str) -> tuple[int, int]:
    if excerpt[0] == "0" and len(excerpt) > 1:
        radix = {"b": 2, "o": 8, "x": 16}.get(excerpt[1])
        if radix is not None:
            return radix, 2
    return 10, 0


def _unescape(chars: Iterator[str], span: Span) -> str:
    def invalid() -> AsmError:
        return AsmError("invalid escape sequence", span)

    c = next(chars, None)
    simple = {"0": "\0", "t": "\t", "r": "\r", "n": "\n", "'": "'", '"': '"', "\\": "\\"}
    if c in simple:
        return simple[c]

    if c == "x":
        byte = 0
        for _ in range(2):
            digit = _to_digit(next(chars, None), 16)
            if digit is None:
                raise invalid()
            byte = byte * 16 + digit
        if byte > 0x7F:
            raise invalid()
        return chr(byte)

    if c == "u":
        if next(chars, None) != "{":
            raise invalid()
        codepoint = 0
        for _ in range(7):
            c = next(chars, None)
            if c == "}":
                break
            digit = _to_digit(c, 16)
            if digit is None:
                raise invalid()
            codepoint = codepoint * 16 + digit
        else:
            raise invalid()
        if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
            raise invalid()
        return chr(codepoint)

    raise invalid()


def excerpt_as_string_contents(excerpt: str, span: Span) -> str:
    """Strip the quotes from a string excerpt and resolve its escapes."""
    if len(excerpt) < 2:
        raise ValueError("string excerpt must include its quotes")
    chars = iter(excerpt[1:-1])
    result = []
    for c in chars:
        result.append(_unescape(chars, span) if c == "\\" else c)
    return "".join(result)


def excerpt_as_usize(excerpt: str, span: Span) -> int:
    """Parse a number excerpt as a machine-sized unsigned integer."""
    if not excerpt:
        raise ValueError("empty number excerpt")
    radix, start = _parse_radix(excerpt)
    value = 0
    for c in excerpt[start:]:
        if c == "_":
            continue
        digit = _to_digit(c, radix)
        if digit is None:
            raise AsmError("invalid digits", span)
        value = value * radix + digit
        if value > _USIZE_MAX:
            raise AsmError("value is too large", span)
    return value


def excerpt_as_bigint(excerpt: str, span: Span) -> tuple[int, Optional[int]]:
    """Parse a number excerpt into (value, size in bits).

    The size is known only for binary, octal and hexadecimal literals.
    """
    if not excerpt:
        raise ValueError("empty number excerpt")
    radix, start = _parse_radix(excerpt)
    value = 0
    digit_count = 0
    for c in excerpt[start:]:
        if c == "_":
            continue
        digit = _to_digit(c, radix)
        if digit is None:
            raise AsmError("invalid digits", span)
        digit_count += 1
        value = value * radix + digit

    if digit_count == 0:
        raise AsmError("invalid value", span)

    radix_bits = {2: 1, 8: 3, 16: 4}.get(radix)
    size = None if radix_bits is None else radix_bits * digit_count
    return value, size