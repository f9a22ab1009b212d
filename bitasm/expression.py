"""Expression trees and the values they evaluate to."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from bitasm.bigint import BigInt
from bitasm.tokens import Span, Token


class UnaryOp(Enum):
    Neg = auto()
    Not = auto()


class BinaryOp(Enum):
    Assign = auto()
    Add = auto()
    Sub = auto()
    Mul = auto()
    Div = auto()
    Mod = auto()
    Shl = auto()
    Shr = auto()
    And = auto()
    Or = auto()
    Xor = auto()
    Eq = auto()
    Ne = auto()
    Lt = auto()
    Le = auto()
    Gt = auto()
    Ge = auto()
    LazyAnd = auto()
    LazyOr = auto()
    Concat = auto()


class Value:
    """Base of all expression values."""

    def get_bigint(self) -> Optional[BigInt]:
        """The value as an integer, or None if it has no integer form."""
        return None

    def make_literal(self) -> "LiteralExpr":
        return LiteralExpr(Span.dummy(), self)


@dataclass(frozen=True)
class UnknownValue(Value):
    def get_bigint(self) -> Optional[BigInt]:
        return BigInt(0)


@dataclass(frozen=True)
class VoidValue(Value):
    pass


@dataclass(frozen=True)
class IntegerValue(Value):
    bigint: BigInt

    def __post_init__(self) -> None:
        if not isinstance(self.bigint, BigInt):
            object.__setattr__(self, "bigint", BigInt(int(self.bigint)))

    def get_bigint(self) -> Optional[BigInt]:
        return self.bigint

    def min_size(self) -> int:
        return self.bigint.min_size()

    def get_bit(self, index: int) -> bool:
        return self.bigint.get_bit(index)


@dataclass(frozen=True)
class StringValue(Value):
    utf8_contents: str
    encoding: str = "utf8"

    def to_bigint(self) -> BigInt:
        return BigInt.from_str(self.utf8_contents)

    def get_bigint(self) -> Optional[BigInt]:
        return self.to_bigint()


@dataclass(frozen=True)
class BoolValue(Value):
    value: bool


@dataclass(frozen=True)
class FunctionValue(Value):
    name: str


class Expr:
    """Base of all expression nodes; every node carries a ``span``."""

    span: Span

    @classmethod
    def dummy(cls) -> "Expr":
        return LiteralExpr(Span.dummy(), BoolValue(False))

    def slice(self) -> Optional[tuple[int, int]]:
        """The (left, right) bit range the expression is known to produce."""
        return None

    def width(self) -> Optional[int]:
        bits = self.slice()
        return None if bits is None else bits[0] + 1 - bits[1]

    def size(self) -> Optional[int]:
        return self.width()

    def has_size(self) -> bool:
        return self.slice() is not None

    def returned_value_span(self) -> Span:
        """The span of the sub-expression whose value is the result."""
        return self.span


@dataclass(frozen=True)
class LiteralExpr(Expr):
    span: Span
    value: Value

    def slice(self) -> Optional[tuple[int, int]]:
        if isinstance(self.value, IntegerValue) and self.value.bigint.size is not None:
            return self.value.bigint.size, 0
        return None


@dataclass(frozen=True)
class VariableExpr(Expr):
    span: Span
    hierarchy_level: int
    hierarchy: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "hierarchy", tuple(self.hierarchy))


@dataclass(frozen=True)
class UnaryExpr(Expr):
    span: Span
    op_span: Span
    op: UnaryOp
    inner: Expr


@dataclass(frozen=True)
class BinaryExpr(Expr):
    span: Span
    op_span: Span
    op: BinaryOp
    lhs: Expr
    rhs: Expr

    def slice(self) -> Optional[tuple[int, int]]:
        if self.op is not BinaryOp.Concat:
            return None
        lhs_width = self.lhs.width()
        rhs_width = self.rhs.width()
        if lhs_width is None or rhs_width is None:
            return None
        return lhs_width + rhs_width, 0


@dataclass(frozen=True)
class TernaryExpr(Expr):
    span: Span
    cond: Expr
    true_branch: Expr
    false_branch: Expr

    def slice(self) -> Optional[tuple[int, int]]:
        true_width = self.true_branch.width()
        false_width = self.false_branch.width()
        if true_width is None or false_width is None or true_width != false_width:
            return None
        return true_width, 0


@dataclass(frozen=True)
class BitSliceExpr(Expr):
    span: Span
    slice_span: Span
    left: int
    right: int
    inner: Expr

    def slice(self) -> Optional[tuple[int, int]]:
        return self.left, self.right


@dataclass(frozen=True)
class SoftSliceExpr(Expr):
    span: Span
    slice_span: Span
    left: int
    right: int
    inner: Expr

    def slice(self) -> Optional[tuple[int, int]]:
        return self.left, self.right


@dataclass(frozen=True)
class BlockExpr(Expr):
    span: Span
    exprs: tuple[Expr, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "exprs", tuple(self.exprs))

    def slice(self) -> Optional[tuple[int, int]]:
        return self.exprs[-1].slice() if self.exprs else None

    def returned_value_span(self) -> Span:
        return self.exprs[-1].returned_value_span() if self.exprs else self.span


@dataclass(frozen=True)
class CallExpr(Expr):
    span: Span
    target: Expr
    args: tuple[Expr, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class AsmExpr(Expr):
    span: Span
    tokens: tuple[Token, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tokens", tuple(self.tokens))