"""Arbitrary-precision integers that remember an optional bit width."""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import total_ordering
from typing import Optional, Union

_USIZE_MAX = 2**64 - 1

IntLike = Union["BigInt", int]


def _int(other: object) -> Optional[int]:
    if isinstance(other, BigInt):
        return other.value
    if isinstance(other, int) and not isinstance(other, bool):
        return other
    return None


def _signed_bytes_be(value: int) -> bytes:
    magnitude = value if value >= 0 else ~value
    length = (magnitude.bit_length() + 8) // 8
    return value.to_bytes(length, "big", signed=True)


def _shift_amount(rhs: IntLike) -> int:
    amount = _int(rhs)
    if amount is None or not 0 <= amount <= _USIZE_MAX:
        raise ValueError("invalid shift value")
    return amount


def _truncated_quotient(lhs: int, rhs: int) -> int:
    quotient = abs(lhs) // abs(rhs)
    return -quotient if (lhs < 0) != (rhs < 0) else quotient


@total_ordering
@dataclass(frozen=True, eq=False)
class BigInt:
    """A two's complement integer; equality and ordering ignore the size."""

    value: int = 0
    size: Optional[int] = None

    @classmethod
    def from_str(cls, s: str) -> "BigInt":
        """The UTF-8 bytes of a string read as a signed big-endian integer."""
        return cls.from_bytes_be(s.encode("utf-8"))

    @classmethod
    def from_bytes_be(cls, data: bytes) -> "BigInt":
        """Bytes read as a signed big-endian integer, sized to the bytes."""
        data = bytes(data)
        return cls(int.from_bytes(data, "big", signed=True), len(data) * 8)

    def as_string(self) -> str:
        """The minimal signed big-endian bytes decoded as UTF-8."""
        return _signed_bytes_be(self.value).decode("utf-8", errors="replace")

    def set_bit(self, index: int, value: bool) -> "BigInt":
        """A copy with one bit set or cleared; the size is dropped."""
        if value:
            return BigInt(self.value | (1 << index))
        return BigInt(self.value & ~(1 << index))

    def get_bit(self, index: int) -> bool:
        """A bit of the infinite two's complement representation."""
        if index < 0:
            raise ValueError("bit index must not be negative")
        return bool((self.value >> index) & 1)

    def min_size(self) -> int:
        """The fewest bits that hold the value (with a sign bit if negative)."""
        if self.value == 0:
            return 1
        if self.value < 0:
            return (self.value + 1).bit_length() + 1
        return self.value.bit_length()

    def size_or_min_size(self) -> int:
        return self.size if self.size is not None else self.min_size()

    def sign(self) -> int:
        return (self.value > 0) - (self.value < 0)

    def div(self, rhs: IntLike) -> "BigInt":
        """Quotient rounded toward zero; raises ZeroDivisionError."""
        divisor = _int(rhs)
        if divisor is None:
            raise TypeError("divisor must be an integer")
        if divisor == 0:
            raise ZeroDivisionError("division by zero")
        return BigInt(_truncated_quotient(self.value, divisor))

    def rem(self, rhs: IntLike) -> "BigInt":
        """Remainder with the sign of the dividend; raises ZeroDivisionError."""
        divisor = _int(rhs)
        if divisor is None:
            raise TypeError("divisor must be an integer")
        if divisor == 0:
            raise ZeroDivisionError("modulo by zero")
        return BigInt(self.value - divisor * _truncated_quotient(self.value, divisor))

    def shl(self, amount: int) -> "BigInt":
        return BigInt(self.value << amount)

    def shr(self, amount: int) -> "BigInt":
        return BigInt(self.value >> amount)

    def checked_shl(self, rhs: IntLike) -> "BigInt":
        """Shift left; raises ValueError if the amount is not a machine size."""
        return self.shl(_shift_amount(rhs))

    def checked_shr(self, rhs: IntLike) -> "BigInt":
        """Shift right; raises ValueError if the amount is not a machine size."""
        return self.shr(_shift_amount(rhs))

    def concat(
        self,
        lhs_slice: tuple[int, int],
        rhs: "BigInt",
        rhs_slice: tuple[int, int],
    ) -> "BigInt":
        """Place a slice of this value above a slice of another."""
        lhs_size = lhs_slice[0] - lhs_slice[1]
        rhs_size = rhs_slice[0] - rhs_slice[1]
        upper = self.slice(*lhs_slice).shl(rhs_size)
        lower = rhs.slice(*rhs_slice)
        return BigInt(upper.value | lower.value, lhs_size + rhs_size)

    def slice(self, left: int, right: int) -> "BigInt":
        """Bits from ``right`` up to, not including, ``left``."""
        if left < right:
            raise ValueError("invalid bit slice range")
        width = left - right
        mask = ((1 << width) - 1) << right
        return BigInt((self.value & mask) >> right, width)

    def convert_le(self) -> "BigInt":
        """The magnitude with its bytes reversed, padded to the size."""
        if self.size is None:
            raise ValueError("value has no size")
        magnitude = abs(self.value)
        data = magnitude.to_bytes(max(1, (magnitude.bit_length() + 7) // 8), "little")
        data = data.ljust(self.size // 8, b"\0")
        return BigInt(int.from_bytes(data, "big"), self.size)

    def __neg__(self) -> "BigInt":
        return BigInt(-self.value)

    def __invert__(self) -> "BigInt":
        return BigInt(~self.value)

    def __add__(self, other: IntLike) -> "BigInt":
        rhs = _int(other)
        return NotImplemented if rhs is None else BigInt(self.value + rhs)

    def __sub__(self, other: IntLike) -> "BigInt":
        rhs = _int(other)
        return NotImplemented if rhs is None else BigInt(self.value - rhs)

    def __mul__(self, other: IntLike) -> "BigInt":
        rhs = _int(other)
        return NotImplemented if rhs is None else BigInt(self.value * rhs)

    def __and__(self, other: IntLike) -> "BigInt":
        rhs = _int(other)
        return NotImplemented if rhs is None else BigInt(self.value & rhs)

    def __or__(self, other: IntLike) -> "BigInt":
        rhs = _int(other)
        return NotImplemented if rhs is None else BigInt(self.value | rhs)

    def __xor__(self, other: IntLike) -> "BigInt":
        rhs = _int(other)
        return NotImplemented if rhs is None else BigInt(self.value ^ rhs)

    def __eq__(self, other: object) -> bool:
        rhs = _int(other)
        return NotImplemented if rhs is None else self.value == rhs

    def __lt__(self, other: IntLike) -> bool:
        rhs = _int(other)
        return NotImplemented if rhs is None else self.value < rhs

    def __hash__(self) -> int:
        return hash(self.value)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __format__(self, spec: str) -> str:
        return format(self.value, spec)

    def resized(self, size: Optional[int]) -> "BigInt":
        """The same value with another size."""
        return replace(self, size=size)