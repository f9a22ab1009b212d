"""Evaluation of expression trees into values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from bitasm.bigint import BigInt
from bitasm.exprparser import parse_expression
from bitasm.expression import (
    AsmExpr,
    BinaryExpr,
    BinaryOp,
    BitSliceExpr,
    BlockExpr,
    BoolValue,
    CallExpr,
    Expr,
    FunctionValue,
    IntegerValue,
    LiteralExpr,
    SoftSliceExpr,
    TernaryExpr,
    UnaryExpr,
    UnaryOp,
    Value,
    VariableExpr,
    VoidValue,
)
from bitasm.parser import Parser
from bitasm.tokens import AsmError, Span, Token, tokenize


class UnhandledLookup(Exception):
    """Raised by a callback to say it does not know what was asked for."""


class EvalContext:
    """Local variables and token substitutions visible during evaluation."""

    def __init__(self) -> None:
        self.locals: dict[str, Value] = {}
        self.token_subs: dict[str, list[Token]] = {}

    def set_local(self, name: str, value: Value) -> None:
        self.locals[name] = value

    def get_local(self, name: str) -> Value:
        """The value of a local; raises KeyError if it is not set."""
        return self.locals[name]

    def set_token_sub(self, name: str, tokens: list[Token]) -> None:
        self.token_subs[name] = list(tokens)

    def get_token_sub(self, name: str) -> Optional[list[Token]]:
        return self.token_subs.get(name)


@dataclass(frozen=True)
class VariableInfo:
    hierarchy_level: int
    hierarchy: tuple[str, ...]
    span: Span


@dataclass(frozen=True)
class FunctionInfo:
    func: Value
    args: tuple[Value, ...]
    arg_spans: tuple[Span, ...]
    span: Span


@dataclass(frozen=True)
class AsmInfo:
    tokens: tuple[Token, ...]
    span: Span
    args: EvalContext


VariableCallback = Callable[[VariableInfo], Value]
FunctionCallback = Callable[[FunctionInfo], Value]
AsmCallback = Callable[[AsmInfo], Value]


_BOOL_OPS = {
    BinaryOp.And: lambda a, b: a & b,
    BinaryOp.Or: lambda a, b: a | b,
    BinaryOp.Xor: lambda a, b: a ^ b,
    BinaryOp.Eq: lambda a, b: a == b,
    BinaryOp.Ne: lambda a, b: a != b,
}

_INT_OPS = {
    BinaryOp.Add: lambda a, b: IntegerValue(a + b),
    BinaryOp.Sub: lambda a, b: IntegerValue(a - b),
    BinaryOp.Mul: lambda a, b: IntegerValue(a * b),
    BinaryOp.And: lambda a, b: IntegerValue(a & b),
    BinaryOp.Or: lambda a, b: IntegerValue(a | b),
    BinaryOp.Xor: lambda a, b: IntegerValue(a ^ b),
    BinaryOp.Eq: lambda a, b: BoolValue(a == b),
    BinaryOp.Ne: lambda a, b: BoolValue(a != b),
    BinaryOp.Lt: lambda a, b: BoolValue(a < b),
    BinaryOp.Le: lambda a, b: BoolValue(a <= b),
    BinaryOp.Gt: lambda a, b: BoolValue(a > b),
    BinaryOp.Ge: lambda a, b: BoolValue(a >= b),
}


class _Evaluator:
    def __init__(
        self,
        ctx: EvalContext,
        eval_var: Optional[VariableCallback],
        eval_fn: Optional[FunctionCallback],
        eval_asm: Optional[AsmCallback],
    ):
        self.ctx = ctx
        self.eval_var = eval_var
        self.eval_fn = eval_fn
        self.eval_asm = eval_asm
        self._dispatch = {
            LiteralExpr: self._literal,
            VariableExpr: self._variable,
            UnaryExpr: self._unary,
            BinaryExpr: self._binary,
            TernaryExpr: self._ternary,
            BitSliceExpr: self._bit_slice,
            SoftSliceExpr: self._soft_slice,
            BlockExpr: self._block,
            CallExpr: self._call,
            AsmExpr: self._asm,
        }

    def eval(self, expr: Expr) -> Value:
        handler = self._dispatch.get(type(expr))
        if handler is None:
            raise TypeError(f"cannot evaluate {type(expr).__name__}")
        return handler(expr)

    def _literal(self, expr: LiteralExpr) -> Value:
        return expr.value

    def _variable(self, expr: VariableExpr) -> Value:
        if expr.hierarchy_level == 0 and len(expr.hierarchy) == 1:
            try:
                return self.ctx.get_local(expr.hierarchy[0])
            except KeyError:
                pass
        if self.eval_var is not None:
            info = VariableInfo(expr.hierarchy_level, expr.hierarchy, expr.span)
            try:
                return self.eval_var(info)
            except UnhandledLookup:
                pass
        raise AsmError("unknown variable", expr.span)

    def _unary(self, expr: UnaryExpr) -> Value:
        inner = self.eval(expr.inner)
        if isinstance(inner, IntegerValue):
            if expr.op is UnaryOp.Neg:
                return IntegerValue(-inner.bigint)
            return IntegerValue(~inner.bigint)
        if isinstance(inner, BoolValue) and expr.op is UnaryOp.Not:
            return BoolValue(not inner.value)
        raise AsmError("invalid argument type to operator", expr.span)

    def _binary(self, expr: BinaryExpr) -> Value:
        if expr.op is BinaryOp.Assign:
            return self._assign(expr)
        if expr.op in (BinaryOp.LazyOr, BinaryOp.LazyAnd):
            return self._lazy(expr)

        lhs = self.eval(expr.lhs)
        rhs = self.eval(expr.rhs)

        if isinstance(lhs, BoolValue) and isinstance(rhs, BoolValue):
            bool_op = _BOOL_OPS.get(expr.op)
            if bool_op is None:
                raise AsmError("invalid argument types to operator", expr.span)
            return BoolValue(bool_op(lhs.value, rhs.value))

        lhs_int = lhs.get_bigint()
        rhs_int = rhs.get_bigint()
        if lhs_int is None or rhs_int is None:
            raise AsmError("invalid argument types to operator", expr.span)

        rhs_span = expr.op_span.join(expr.rhs.span)
        op = expr.op

        if op is BinaryOp.Div:
            try:
                return IntegerValue(lhs_int.div(rhs_int))
            except ZeroDivisionError:
                raise AsmError("division by zero", rhs_span) from None
        if op is BinaryOp.Mod:
            try:
                return IntegerValue(lhs_int.rem(rhs_int))
            except ZeroDivisionError:
                raise AsmError("modulo by zero", rhs_span) from None
        if op in (BinaryOp.Shl, BinaryOp.Shr):
            shift = lhs_int.checked_shl if op is BinaryOp.Shl else lhs_int.checked_shr
            try:
                return IntegerValue(shift(rhs_int))
            except ValueError:
                raise AsmError("invalid shift value", rhs_span) from None
        if op is BinaryOp.Concat:
            if lhs_int.size is None:
                raise AsmError("argument to concatenation with unspecified size", expr.lhs.span)
            if rhs_int.size is None:
                raise AsmError("argument to concatenation with unspecified size", expr.rhs.span)
            return IntegerValue(
                lhs_int.concat((lhs_int.size, 0), rhs_int, (rhs_int.size, 0)))

        int_op = _INT_OPS.get(op)
        if int_op is None:
            raise AsmError("invalid argument types to operator", expr.span)
        return int_op(lhs_int, rhs_int)

    def _assign(self, expr: BinaryExpr) -> Value:
        target = expr.lhs
        if not isinstance(target, VariableExpr):
            raise AsmError("invalid assignment destination", target.span)
        if target.hierarchy_level != 0 or len(target.hierarchy) != 1:
            raise AsmError("symbol cannot be assigned to", target.span)
        value = self.eval(expr.rhs)
        self.ctx.set_local(target.hierarchy[0], value)
        return VoidValue()

    def _lazy(self, expr: BinaryExpr) -> Value:
        short_circuit = expr.op is BinaryOp.LazyOr
        lhs = self.eval(expr.lhs)
        if not isinstance(lhs, BoolValue):
            raise AsmError("invalid argument type to operator", expr.lhs.span)
        if lhs.value is short_circuit:
            return lhs
        rhs = self.eval(expr.rhs)
        if not isinstance(rhs, BoolValue):
            raise AsmError("invalid argument type to operator", expr.rhs.span)
        return rhs

    def _ternary(self, expr: TernaryExpr) -> Value:
        cond = self.eval(expr.cond)
        if not isinstance(cond, BoolValue):
            raise AsmError("invalid condition type", expr.cond.span)
        return self.eval(expr.true_branch if cond.value else expr.false_branch)

    def _bit_slice(self, expr: BitSliceExpr) -> Value:
        inner = self.eval(expr.inner).get_bigint()
        if inner is None:
            raise AsmError("invalid argument type to slice", expr.span)
        return IntegerValue(inner.slice(expr.left, expr.right))

    def _soft_slice(self, expr: SoftSliceExpr) -> Value:
        return self.eval(expr.inner)

    def _block(self, expr: BlockExpr) -> Value:
        result: Value = VoidValue()
        for inner in expr.exprs:
            result = self.eval(inner)
        return result

    def _call(self, expr: CallExpr) -> Value:
        func = self.eval(expr.target)
        if not isinstance(func, FunctionValue):
            raise AsmError("expression is not callable", expr.target.span)
        args = tuple(self.eval(arg) for arg in expr.args)
        if self.eval_fn is not None:
            info = FunctionInfo(func, args, tuple(arg.span for arg in expr.args), expr.span)
            try:
                return self.eval_fn(info)
            except UnhandledLookup:
                pass
        raise AsmError("unknown function", expr.span)

    def _asm(self, expr: AsmExpr) -> Value:
        if self.eval_asm is not None:
            info = AsmInfo(expr.tokens, expr.span, self.ctx)
            try:
                return self.eval_asm(info)
            except UnhandledLookup:
                pass
        raise AsmError("asm blocks cannot be evaluated here", expr.span)


def evaluate(
    expr: Expr,
    ctx: Optional[EvalContext] = None,
    eval_var: Optional[VariableCallback] = None,
    eval_fn: Optional[FunctionCallback] = None,
    eval_asm: Optional[AsmCallback] = None,
) -> Value:
    """Evaluate an expression; errors raise AsmError.

    Callbacks resolve non-local variables, function calls and asm blocks;
    a callback raises UnhandledLookup when it cannot resolve its request.
    """
    evaluator = _Evaluator(
        ctx if ctx is not None else EvalContext(),
        eval_var,
        eval_fn,
        eval_asm,
    )
    return evaluator.eval(expr)


def evaluate_source(src: str, filename: str = "expr") -> Value:
    """Tokenize, parse and evaluate one expression with a fresh context."""
    tokens = tokenize(filename, src)
    expr = parse_expression(Parser(tokens))
    return evaluate(expr)