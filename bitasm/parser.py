"""A cursor over a token list with look-ahead and slicing helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from bitasm.excerpt import excerpt_as_usize
from bitasm.tokens import AsmError, Span, Token, TokenKind

_USIZE_MAX = 2**64 - 1


@dataclass(frozen=True)
class ParserState:
    """A saved parser position, restorable with Parser.restore."""

    index: int
    index_prev: int
    read_linebreak: bool
    partial_index: int


class Parser:
    """Walks over tokens, skipping whitespace, comments and line breaks.

    Line breaks are not returned as tokens; instead the parser remembers
    whether one was skipped before the next significant token.
    """

    def __init__(self, tokens: Sequence[Token]):
        self.tokens: tuple[Token, ...] = tuple(tokens)
        self.index = 0
        self.index_prev = 0
        self.read_linebreak = False
        self.partial_index = 0
        self._skip_ignorable()

    def full_span(self) -> Span:
        """The span covering every token, or a dummy span if there are none."""
        if not self.tokens:
            return Span.dummy()
        return self.tokens[0].span.join(self.tokens[-1].span)

    def cloned_tokens(self) -> list[Token]:
        return list(self.tokens)

    def tokens_between(self, start: int, end: int) -> list[Token]:
        return list(self.tokens[start:end])

    def next_spans(self, count: int) -> Span:
        """The span of the next token joined with up to ``count`` tokens after it."""
        if self.index >= len(self.tokens):
            return Span.dummy()
        span = self.tokens[self.index].span
        for token in self.tokens[self.index + 1:self.index + 1 + count]:
            span = span.join(token.span)
        return span

    def span_after_prev(self) -> Span:
        """An empty span right after the previously consumed token."""
        if self.index_prev >= len(self.tokens):
            return Span.dummy()
        return self.tokens[self.index_prev].span.after()

    def clone_slice(self, start: int, end: int) -> "Parser":
        return Parser(self.tokens[start:end])

    def slice_until_linebreak(self) -> "Parser":
        start = self.index
        end = start
        while not self.is_over() and not self.next_is_linebreak():
            self.advance()
            end = self.index_prev + 1
        return self.clone_slice(start, end)

    def _slice_over_nested_braces(self, at_stop: Callable[[], bool]) -> "Parser":
        start = self.index
        nesting = 0
        while not self.is_over() and (not at_stop() or nesting > 0):
            if self.next_is(0, TokenKind.BraceOpen):
                nesting += 1
            elif self.next_is(0, TokenKind.BraceClose) and nesting > 0:
                nesting -= 1
            self.advance()
        return self.clone_slice(start, self.index)

    def slice_until_linebreak_over_nested_braces(self) -> "Parser":
        return self._slice_over_nested_braces(self.next_is_linebreak)

    def slice_until_token(self, kind: TokenKind) -> "Parser":
        start = self.index
        end = start
        while not self.is_over() and not self.next_is(0, kind):
            self.advance()
            end = self.index_prev + 1
        return self.clone_slice(start, end)

    def slice_until_token_over_nested_braces(self, kind: TokenKind) -> "Parser":
        return self._slice_over_nested_braces(lambda: self.next_is(0, kind))

    def slice_until_char(self, c: str) -> Optional["Parser"]:
        """Slice up to a character; None if it lies inside a token."""
        start = self.index
        end = start
        while not self.is_over() and self.next_partial() != c:
            self.advance_partial()
            end = self.index_prev + 1
        if self.is_at_partial():
            return None
        return self.clone_slice(start, end)

    def slice_until_char_or_nesting(self, c: str) -> Optional["Parser"]:
        """Slice up to a character outside parentheses; None if inside a token."""
        start = self.index
        nesting = 0
        while not self.is_over() and (nesting > 0 or self.next_partial() != c):
            if self.next_is(0, TokenKind.ParenOpen):
                nesting += 1
                self.advance()
            elif self.next_is(0, TokenKind.ParenClose) and nesting > 0:
                nesting -= 1
                self.advance()
            elif nesting > 0:
                self.advance()
            else:
                self.advance_partial()
        end = self.index_prev + 1
        if self.is_at_partial() or start > end:
            return None
        return self.clone_slice(start, end)

    def save(self) -> ParserState:
        return ParserState(self.index, self.index_prev, self.read_linebreak, self.partial_index)

    def restore(self, state: ParserState) -> None:
        self.index = state.index
        self.index_prev = state.index_prev
        self.read_linebreak = state.read_linebreak
        self.partial_index = state.partial_index

    def is_over(self) -> bool:
        return self.index >= len(self.tokens)

    def _skip_ignorable(self) -> None:
        while self.index < len(self.tokens) and self.tokens[self.index].kind.ignorable():
            if self.tokens[self.index].kind is TokenKind.LineBreak:
                self.read_linebreak = True
            self.index += 1

    def advance(self) -> Token:
        """Consume and return the next token."""
        if self.is_at_partial():
            raise RuntimeError("parser is in the middle of a token")
        self.index_prev = self.index
        token = self.tokens[self.index]
        self.index += 1
        self.read_linebreak = False
        self._skip_ignorable()
        return token

    def advance_partial(self) -> str:
        """Consume one character of the next token; "\\0" when over."""
        if self.index >= len(self.tokens):
            return "\0"
        rest = self.tokens[self.index].text()[self.partial_index:]
        if len(rest) > 1:
            self.partial_index += 1
        else:
            self.partial_index = 0
            self.advance()
        return rest[0]

    def skip_until_linebreak(self) -> None:
        while not self.is_over() and not self.next_is_linebreak():
            self.advance()

    def next(self) -> Token:
        return self.tokens[self.index]

    def next_partial(self) -> str:
        """The next unconsumed character; "\\0" when over."""
        if self.index >= len(self.tokens):
            return "\0"
        token = self.tokens[self.index]
        if token.kind is TokenKind.Whitespace:
            return " "
        return token.text()[self.partial_index]

    def prev(self) -> Token:
        return self.tokens[self.index_prev]

    def clear_linebreak(self) -> None:
        self.read_linebreak = False

    def is_at_partial(self) -> bool:
        return self.partial_index != 0

    def next_is(self, nth: int, kind: TokenKind) -> bool:
        """Whether the ``nth`` significant token ahead has the given kind."""
        index = self.index
        count = len(self.tokens)
        while nth > 0 and index < count:
            nth -= 1
            index += 1
            while index < count and self.tokens[index].kind.ignorable():
                index += 1
        return index < count and self.tokens[index].kind is kind

    def maybe_expect(self, kind: TokenKind) -> Optional[Token]:
        return self.advance() if self.next_is(0, kind) else None

    def expect(self, kind: TokenKind) -> Token:
        return self.expect_msg(kind, f"expected {kind.printable()}")

    def expect_msg(self, kind: TokenKind, descr: str) -> Token:
        token = self.maybe_expect(kind)
        if token is None:
            raise AsmError(descr, self.span_after_prev())
        return token

    def next_is_linebreak(self) -> bool:
        return self.read_linebreak or self.is_over()

    def maybe_expect_linebreak(self) -> bool:
        if self.next_is_linebreak():
            self.read_linebreak = False
            return True
        return False

    def expect_linebreak(self) -> None:
        if not self.maybe_expect_linebreak():
            raise AsmError("expected line break", self.span_after_prev())

    def expect_linebreak_or(self, kind: TokenKind) -> None:
        if self.maybe_expect(kind) is not None:
            return
        self.expect_linebreak()

    def expect_usize(self) -> tuple[Token, int]:
        token = self.expect(TokenKind.Number)
        return token, excerpt_as_usize(token.excerpt or "", token.span)

    def maybe_expect_partial_usize(self) -> Optional[int]:
        """Consume leading decimal digits character by character."""
        value = 0
        consumed = 0
        while not self.is_over():
            c = self.next_partial()
            if not ("0" <= c <= "9"):
                break
            candidate = value * 10 + (ord(c) - ord("0"))
            if candidate > _USIZE_MAX:
                break
            value = candidate
            self.advance_partial()
            consumed += 1
        return value if consumed else None