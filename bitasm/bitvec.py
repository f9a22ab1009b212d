"""A growable sequence of bits annotated with source spans."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from bitasm.bigint import BigInt
from bitasm.tokens import Span


@dataclass(frozen=True)
class BitVecSpan:
    """Ties a run of output bits to a logical address and source span."""

    addr: BigInt
    offset: Optional[int]
    size: int
    span: Span


@dataclass
class BitVec:
    bits: list[bool] = field(default_factory=list)
    spans: list[BitVecSpan] = field(default_factory=list)

    def write(self, index: int, bit: bool) -> None:
        """Set a bit, growing the vector with zeros as needed."""
        if index >= len(self.bits):
            self.bits.extend([False] * (index + 1 - len(self.bits)))
        self.bits[index] = bool(bit)

    def write_bigint(self, index: int, bigint: BigInt) -> None:
        """Write a sized value most significant bit first."""
        if bigint.size is None:
            raise ValueError("value has no size")
        size = bigint.size
        for i in range(size):
            self.write(index + i, bigint.get_bit(size - 1 - i))

    def write_bitvec(self, index: int, bitvec: "BitVec") -> None:
        for i, bit in enumerate(bitvec.bits):
            self.write(index + i, bit)
        self.mark_spans_from(index, bitvec)

    def mark_spans_from(self, index: int, bitvec: "BitVec") -> None:
        """Copy another vector's spans, moving their offsets by ``index``."""
        for span in bitvec.spans:
            if span.offset is not None:
                span = replace(span, offset=span.offset + index)
            self.spans.append(span)

    def mark_span(self, offset: Optional[int], size: int, addr: BigInt, span: Span) -> None:
        self.spans.append(BitVecSpan(addr=addr, offset=offset, size=size, span=span))

    def read(self, index: int) -> bool:
        """A bit, or False past the end."""
        return self.bits[index] if 0 <= index < len(self.bits) else False

    def as_bigint(self) -> BigInt:
        """The bits as a non-negative value sized to the vector."""
        value = 0
        for bit in self.bits:
            value = (value << 1) | bit
        return BigInt(value, len(self.bits))

    def truncate(self, new_len: int) -> None:
        """Drop every bit from ``new_len`` onwards; never grows the vector."""
        if new_len < len(self.bits):
            self.bits = self.bits[:max(new_len, 0)]

    def to_hex(self) -> str:
        """Lower-case hex digits, the last one padded with zero bits."""
        digits = []
        for start in range(0, len(self.bits), 4):
            digit = 0
            for i in range(start, start + 4):
                digit = (digit << 1) | self.read(i)
            digits.append(format(digit, "x"))
        return "".join(digits)

    def __len__(self) -> int:
        return len(self.bits)