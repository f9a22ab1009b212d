"""Recursive-descent parser turning tokens into expression trees."""

from __future__ import annotations

from typing import Callable, Sequence

from bitasm.bigint import BigInt
from bitasm.excerpt import excerpt_as_bigint, excerpt_as_string_contents, excerpt_as_usize
from bitasm.expression import (
    AsmExpr,
    BinaryExpr,
    BinaryOp,
    BitSliceExpr,
    BlockExpr,
    CallExpr,
    Expr,
    IntegerValue,
    LiteralExpr,
    StringValue,
    TernaryExpr,
    UnaryExpr,
    UnaryOp,
    VariableExpr,
)
from bitasm.parser import Parser
from bitasm.tokens import AsmError, Span, TokenKind

_Inner = Callable[[], Expr]

_UNARY_OPS = (
    (TokenKind.Exclamation, UnaryOp.Not),
    (TokenKind.Minus, UnaryOp.Neg),
)

_CONCAT_OPS = ((TokenKind.At, BinaryOp.Concat),)
_LAZY_OR_OPS = ((TokenKind.VerticalBarVerticalBar, BinaryOp.LazyOr),)
_LAZY_AND_OPS = ((TokenKind.AmpersandAmpersand, BinaryOp.LazyAnd),)
_RELATIONAL_OPS = (
    (TokenKind.EqualEqual, BinaryOp.Eq),
    (TokenKind.ExclamationEqual, BinaryOp.Ne),
    (TokenKind.LessThan, BinaryOp.Lt),
    (TokenKind.LessThanEqual, BinaryOp.Le),
    (TokenKind.GreaterThan, BinaryOp.Gt),
    (TokenKind.GreaterThanEqual, BinaryOp.Ge),
)
_OR_OPS = ((TokenKind.VerticalBar, BinaryOp.Or),)
_XOR_OPS = ((TokenKind.Circumflex, BinaryOp.Xor),)
_AND_OPS = ((TokenKind.Ampersand, BinaryOp.And),)
_SHIFT_OPS = (
    (TokenKind.LessThanLessThan, BinaryOp.Shl),
    (TokenKind.GreaterThanGreaterThan, BinaryOp.Shr),
)
_ADD_OPS = (
    (TokenKind.Plus, BinaryOp.Add),
    (TokenKind.Minus, BinaryOp.Sub),
)
_MUL_OPS = (
    (TokenKind.Asterisk, BinaryOp.Mul),
    (TokenKind.Slash, BinaryOp.Div),
    (TokenKind.Percent, BinaryOp.Mod),
)


class ExpressionParser:
    """Parses one expression from a token parser; errors raise AsmError."""

    def __init__(self, parser: Parser):
        self.parser = parser

    def parse_expr(self) -> Expr:
        return self._parse_ternary()

    def _match_op(self, ops: Sequence[tuple[TokenKind, object]]):
        for kind, op in ops:
            token = self.parser.maybe_expect(kind)
            if token is not None:
                return token, op
        return None

    def _parse_unary_ops(self, ops, parse_inner: _Inner) -> Expr:
        matched = self._match_op(ops)
        if matched is None:
            return parse_inner()
        token, op = matched
        inner = self._parse_unary_ops(ops, parse_inner)
        return UnaryExpr(token.span.join(inner.span), token.span, op, inner)

    def _parse_binary_ops(self, ops, parse_inner: _Inner) -> Expr:
        lhs = parse_inner()
        while not self.parser.next_is_linebreak():
            matched = self._match_op(ops)
            if matched is None:
                break
            token, op = matched
            rhs = parse_inner()
            lhs = BinaryExpr(lhs.span.join(rhs.span), token.span, op, lhs, rhs)
        return lhs

    def _parse_right_associative_ops(self, ops, parse_inner: _Inner) -> Expr:
        lhs = parse_inner()
        matched = self._match_op(ops)
        if matched is None:
            return lhs
        token, op = matched
        rhs = self.parse_expr()
        return BinaryExpr(lhs.span.join(rhs.span), token.span, op, lhs, rhs)

    def _parse_ternary(self) -> Expr:
        cond = self._parse_assignment()
        if self.parser.maybe_expect(TokenKind.Question) is None:
            return cond
        true_branch = self.parse_expr()
        if self.parser.maybe_expect(TokenKind.Colon) is not None:
            false_branch = self._parse_assignment()
        else:
            false_branch = BlockExpr(true_branch.span, ())
        return TernaryExpr(cond.span.join(false_branch.span), cond, true_branch, false_branch)

    def _parse_assignment(self) -> Expr:
        return self._parse_right_associative_ops(
            ((TokenKind.Equal, BinaryOp.Assign),), self._parse_concat)

    def _parse_concat(self) -> Expr:
        return self._parse_binary_ops(_CONCAT_OPS, self._parse_lazy_or)

    def _parse_lazy_or(self) -> Expr:
        return self._parse_binary_ops(_LAZY_OR_OPS, self._parse_lazy_and)

    def _parse_lazy_and(self) -> Expr:
        return self._parse_binary_ops(_LAZY_AND_OPS, self._parse_relational)

    def _parse_relational(self) -> Expr:
        return self._parse_binary_ops(_RELATIONAL_OPS, self._parse_binary_or)

    def _parse_binary_or(self) -> Expr:
        return self._parse_binary_ops(_OR_OPS, self._parse_binary_xor)

    def _parse_binary_xor(self) -> Expr:
        return self._parse_binary_ops(_XOR_OPS, self._parse_binary_and)

    def _parse_binary_and(self) -> Expr:
        return self._parse_binary_ops(_AND_OPS, self._parse_shifts)

    def _parse_shifts(self) -> Expr:
        return self._parse_binary_ops(_SHIFT_OPS, self._parse_addition)

    def _parse_addition(self) -> Expr:
        return self._parse_binary_ops(_ADD_OPS, self._parse_multiplication)

    def _parse_multiplication(self) -> Expr:
        return self._parse_binary_ops(_MUL_OPS, self._parse_bitslice)

    def _expect_usize(self) -> tuple[Span, int]:
        token = self.parser.expect(TokenKind.Number)
        return token.span, excerpt_as_usize(token.excerpt or "", token.span)

    def _parse_bitslice(self) -> Expr:
        inner = self._parse_size()
        if self.parser.next_is_linebreak():
            return inner
        tk_open = self.parser.maybe_expect(TokenKind.BracketOpen)
        if tk_open is None:
            return inner

        tk_left = self.parser.expect(TokenKind.Number)
        self.parser.expect(TokenKind.Colon)
        tk_right = self.parser.expect(TokenKind.Number)
        tk_close = self.parser.expect(TokenKind.BracketClose)

        leftmost = excerpt_as_usize(tk_left.excerpt or "", tk_left.span)
        rightmost = excerpt_as_usize(tk_right.excerpt or "", tk_right.span)

        slice_span = tk_open.span.join(tk_close.span)
        span = inner.span.join(tk_close.span)

        if leftmost < rightmost:
            raise AsmError("invalid bit slice range", slice_span)

        return BitSliceExpr(span, slice_span, leftmost + 1, rightmost, inner)

    def _parse_size(self) -> Expr:
        inner = self._parse_unary()
        if self.parser.next_is_linebreak():
            return inner
        tk_grave = self.parser.maybe_expect(TokenKind.Grave)
        if tk_grave is None:
            return inner
        size_token_span, size = self._expect_usize()
        span = inner.span.join(size_token_span)
        size_span = tk_grave.span.join(size_token_span)
        return BitSliceExpr(span, size_span, size, 0, inner)

    def _parse_unary(self) -> Expr:
        return self._parse_unary_ops(_UNARY_OPS, self._parse_call)

    def _parse_call(self) -> Expr:
        leaf = self._parse_leaf()
        if self.parser.next_is_linebreak():
            return leaf
        if self.parser.maybe_expect(TokenKind.ParenOpen) is None:
            return leaf

        args = []
        while not self.parser.next_is(0, TokenKind.ParenClose):
            args.append(self.parse_expr())
            if self.parser.next_is(0, TokenKind.ParenClose):
                break
            self.parser.expect(TokenKind.Comma)

        tk_close = self.parser.expect(TokenKind.ParenClose)
        return CallExpr(leaf.span.join(tk_close.span), leaf, args)

    def _parse_leaf(self) -> Expr:
        next_is = self.parser.next_is
        if next_is(0, TokenKind.BraceOpen):
            return self._parse_block()
        if next_is(0, TokenKind.ParenOpen):
            return self._parse_parenthesized()
        if next_is(0, TokenKind.Identifier) or next_is(0, TokenKind.Dot):
            return self._parse_variable()
        if next_is(0, TokenKind.Number):
            return self._parse_number()
        if next_is(0, TokenKind.String):
            return self._parse_string()
        if next_is(0, TokenKind.KeywordAsm):
            return self._parse_asm()
        raise AsmError("expected expression", self.parser.span_after_prev())

    def _parse_block(self) -> Expr:
        tk_open = self.parser.expect(TokenKind.BraceOpen)
        exprs = []
        while not self.parser.next_is(0, TokenKind.BraceClose):
            exprs.append(self.parse_expr())
            if self.parser.maybe_expect_linebreak():
                continue
            if self.parser.next_is(0, TokenKind.BraceClose):
                break
            self.parser.expect(TokenKind.Comma)
        tk_close = self.parser.expect(TokenKind.BraceClose)
        return BlockExpr(tk_open.span.join(tk_close.span), exprs)

    def _parse_parenthesized(self) -> Expr:
        self.parser.expect(TokenKind.ParenOpen)
        expr = self.parse_expr()
        self.parser.expect(TokenKind.ParenClose)
        return expr

    def _parse_variable(self) -> Expr:
        span = Span.dummy()
        hierarchy_level = 0
        while (tk_dot := self.parser.maybe_expect(TokenKind.Dot)) is not None:
            hierarchy_level += 1
            span = span.join(tk_dot.span)

        hierarchy = []
        while True:
            tk_name = self.parser.expect(TokenKind.Identifier)
            hierarchy.append(tk_name.excerpt or "")
            span = span.join(tk_name.span)
            if self.parser.maybe_expect(TokenKind.Dot) is None:
                break

        return VariableExpr(span, hierarchy_level, tuple(hierarchy))

    def _parse_number(self) -> Expr:
        token = self.parser.expect(TokenKind.Number)
        value, size = excerpt_as_bigint(token.excerpt or "", token.span)
        return LiteralExpr(token.span, IntegerValue(BigInt(value, size)))

    def _parse_string(self) -> Expr:
        token = self.parser.expect(TokenKind.String)
        contents = excerpt_as_string_contents(token.excerpt or "", token.span)
        return LiteralExpr(token.span, StringValue(contents, "utf8"))

    def _parse_asm(self) -> Expr:
        tk_asm = self.parser.expect(TokenKind.KeywordAsm)
        self.parser.expect(TokenKind.BraceOpen)
        contents = self.parser.slice_until_token_over_nested_braces(TokenKind.BraceClose)
        tk_close = self.parser.expect(TokenKind.BraceClose)
        return AsmExpr(tk_asm.span.join(tk_close.span), contents.cloned_tokens())


def parse_expression(parser: Parser) -> Expr:
    """Parse one expression from the parser's current position."""
    return ExpressionParser(parser).parse_expr()