"""Source spans, token kinds and the tokenizer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


@dataclass(frozen=True)
class Span:
    """A range of character indices inside a named source file."""

    file: str
    location: Optional[tuple[int, int]] = None

    @classmethod
    def dummy(cls) -> "Span":
        """A span that points nowhere."""
        return cls("", None)

    def join(self, other: "Span") -> "Span":
        """The smallest span covering both spans."""
        if self.location is None:
            return other
        if other.location is None:
            return self
        start = min(self.location[0], other.location[0])
        end = max(self.location[1], other.location[1])
        return Span(self.file, (start, end))

    def after(self) -> "Span":
        """An empty span placed right after this one."""
        if self.location is None:
            return self
        end = self.location[1]
        return Span(self.file, (end, end))


class AsmError(Exception):
    """A diagnostic raised while reading or evaluating source."""

    def __init__(self, message: str, span: Optional[Span] = None):
        super().__init__(message)
        self.message = message
        self.span = span

    def __str__(self) -> str:
        return self.message


class TokenKind(Enum):
    Error = auto()
    Whitespace = auto()
    Comment = auto()
    LineBreak = auto()
    Identifier = auto()
    Number = auto()
    String = auto()
    KeywordAsm = auto()
    ParenOpen = auto()
    ParenClose = auto()
    BracketOpen = auto()
    BracketClose = auto()
    BraceOpen = auto()
    BraceClose = auto()
    Dot = auto()
    Comma = auto()
    Colon = auto()
    ColonColon = auto()
    ArrowRight = auto()
    ArrowLeft = auto()
    HeavyArrowRight = auto()
    Hash = auto()
    Equal = auto()
    Plus = auto()
    Minus = auto()
    Asterisk = auto()
    Slash = auto()
    Percent = auto()
    Question = auto()
    Exclamation = auto()
    Ampersand = auto()
    VerticalBar = auto()
    Circumflex = auto()
    Tilde = auto()
    Grave = auto()
    At = auto()
    AmpersandAmpersand = auto()
    VerticalBarVerticalBar = auto()
    EqualEqual = auto()
    ExclamationEqual = auto()
    LessThan = auto()
    LessThanLessThan = auto()
    LessThanEqual = auto()
    GreaterThan = auto()
    GreaterThanGreaterThan = auto()
    GreaterThanGreaterThanGreaterThan = auto()
    GreaterThanEqual = auto()

    def needs_excerpt(self) -> bool:
        return self in _EXCERPT_KINDS

    def ignorable(self) -> bool:
        return self in _IGNORABLE_KINDS

    def is_allowed_pattern_token(self) -> bool:
        return self in _PATTERN_KINDS

    def is_allowed_after_pattern_parameter(self) -> bool:
        return self in _AFTER_PARAMETER_KINDS

    def printable(self) -> str:
        return _PRINTABLE[self]

    def printable_excerpt(self, excerpt: Optional[str]) -> str:
        if self.needs_excerpt():
            return f"`{excerpt}`"
        return self.printable()


_EXCERPT_KINDS = frozenset({TokenKind.Identifier, TokenKind.Number, TokenKind.String})

_IGNORABLE_KINDS = frozenset({TokenKind.Whitespace, TokenKind.Comment, TokenKind.LineBreak})

_PATTERN_KINDS = frozenset({
    TokenKind.Identifier, TokenKind.Number, TokenKind.KeywordAsm,
    TokenKind.ParenOpen, TokenKind.ParenClose,
    TokenKind.BracketOpen, TokenKind.BracketClose,
    TokenKind.Dot, TokenKind.Comma,
    TokenKind.ArrowLeft, TokenKind.ArrowRight, TokenKind.Hash,
    TokenKind.Plus, TokenKind.Minus, TokenKind.Asterisk, TokenKind.Slash,
    TokenKind.Percent, TokenKind.Exclamation, TokenKind.Ampersand,
    TokenKind.VerticalBar, TokenKind.Circumflex, TokenKind.Tilde, TokenKind.At,
    TokenKind.LessThan, TokenKind.GreaterThan,
})

_AFTER_PARAMETER_KINDS = frozenset({TokenKind.ParenClose, TokenKind.BracketClose, TokenKind.Comma})

_TEXT = {
    TokenKind.KeywordAsm: "asm",
    TokenKind.ParenOpen: "(",
    TokenKind.ParenClose: ")",
    TokenKind.BracketOpen: "[",
    TokenKind.BracketClose: "]",
    TokenKind.BraceOpen: "{",
    TokenKind.BraceClose: "}",
    TokenKind.Dot: ".",
    TokenKind.Comma: ",",
    TokenKind.Colon: ":",
    TokenKind.ColonColon: "::",
    TokenKind.ArrowRight: "->",
    TokenKind.ArrowLeft: "<-",
    TokenKind.HeavyArrowRight: "=>",
    TokenKind.Hash: "#",
    TokenKind.Equal: "=",
    TokenKind.Plus: "+",
    TokenKind.Minus: "-",
    TokenKind.Asterisk: "*",
    TokenKind.Slash: "/",
    TokenKind.Percent: "%",
    TokenKind.Question: "?",
    TokenKind.Exclamation: "!",
    TokenKind.Ampersand: "&",
    TokenKind.VerticalBar: "|",
    TokenKind.Circumflex: "^",
    TokenKind.Tilde: "~",
    TokenKind.At: "@",
    TokenKind.Grave: "`",
    TokenKind.AmpersandAmpersand: "&&",
    TokenKind.VerticalBarVerticalBar: "||",
    TokenKind.EqualEqual: "==",
    TokenKind.ExclamationEqual: "!=",
    TokenKind.LessThan: "<",
    TokenKind.LessThanLessThan: "<<",
    TokenKind.LessThanEqual: "<=",
    TokenKind.GreaterThan: ">",
    TokenKind.GreaterThanGreaterThan: ">>",
    TokenKind.GreaterThanGreaterThanGreaterThan: ">>>",
    TokenKind.GreaterThanEqual: ">=",
}

_PRINTABLE = {
    TokenKind.Error: "error",
    TokenKind.Whitespace: "whitespace",
    TokenKind.Comment: "comment",
    TokenKind.LineBreak: "line break",
    TokenKind.Identifier: "identifier",
    TokenKind.Number: "number",
    TokenKind.String: "string",
    TokenKind.KeywordAsm: "`asm` keyword",
    **{kind: f"`{text}`" for kind, text in _TEXT.items() if kind is not TokenKind.KeywordAsm},
}

# Order matters: longer operators must be tried before their prefixes.
_FIXED = (
    ("\n", TokenKind.LineBreak),
    ("asm", TokenKind.KeywordAsm),
    ("(", TokenKind.ParenOpen),
    (")", TokenKind.ParenClose),
    ("[", TokenKind.BracketOpen),
    ("]", TokenKind.BracketClose),
    ("{", TokenKind.BraceOpen),
    ("}", TokenKind.BraceClose),
    (".", TokenKind.Dot),
    (",", TokenKind.Comma),
    ("::", TokenKind.ColonColon),
    (":", TokenKind.Colon),
    ("->", TokenKind.ArrowRight),
    ("<-", TokenKind.ArrowLeft),
    ("=>", TokenKind.HeavyArrowRight),
    ("#", TokenKind.Hash),
    ("+", TokenKind.Plus),
    ("-", TokenKind.Minus),
    ("*", TokenKind.Asterisk),
    ("/", TokenKind.Slash),
    ("%", TokenKind.Percent),
    ("^", TokenKind.Circumflex),
    ("~", TokenKind.Tilde),
    ("@", TokenKind.At),
    ("`", TokenKind.Grave),
    ("&&", TokenKind.AmpersandAmpersand),
    ("&", TokenKind.Ampersand),
    ("||", TokenKind.VerticalBarVerticalBar),
    ("|", TokenKind.VerticalBar),
    ("==", TokenKind.EqualEqual),
    ("=", TokenKind.Equal),
    ("?", TokenKind.Question),
    ("!=", TokenKind.ExclamationEqual),
    ("!", TokenKind.Exclamation),
    ("<=", TokenKind.LessThanEqual),
    ("<<", TokenKind.LessThanLessThan),
    ("<", TokenKind.LessThan),
    (">=", TokenKind.GreaterThanEqual),
    (">>>", TokenKind.GreaterThanGreaterThanGreaterThan),
    (">>", TokenKind.GreaterThanGreaterThan),
    (">", TokenKind.GreaterThan),
)


@dataclass(frozen=True)
class Token:
    span: Span
    kind: TokenKind
    excerpt: Optional[str] = None

    def text(self) -> str:
        """The source text of the token."""
        fixed = _TEXT.get(self.kind)
        if fixed is not None:
            return fixed
        if self.excerpt is None:
            raise ValueError(f"{self.kind.printable()} token has no text")
        return self.excerpt


def is_whitespace(c: str) -> bool:
    return c in (" ", "\t", "\r")


def _is_identifier_start(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z") or c in "_$"


def _is_identifier_mid(c: str) -> bool:
    return _is_identifier_start(c) or ("0" <= c <= "9")


def _is_number_start(c: str) -> bool:
    return "0" <= c <= "9"


def _is_number_mid(c: str) -> bool:
    return _is_identifier_mid(c) and c != "$" or c in ".'"


def _run_length(src: str, start: int, pred) -> int:
    end = start
    while end < len(src) and pred(src[end]):
        end += 1
    return end - start


def _check_whitespace(src: str, i: int):
    if not is_whitespace(src[i]):
        return None
    return TokenKind.Whitespace, _run_length(src, i, is_whitespace)


def _check_comment(src: str, i: int):
    if src[i] != ";":
        return None
    n = len(src)
    if i + 1 < n and src[i + 1] == "*":
        nesting = 1
        j = i + 2
        while True:
            if j + 1 >= n:
                return None
            pair = src[j:j + 2]
            if pair == ";*":
                nesting += 1
                j += 2
            elif pair == "*;":
                nesting -= 1
                j += 2
                if nesting == 0:
                    break
            else:
                j += 1
        return TokenKind.Comment, j - i
    end = src.find("\n", i)
    if end == -1:
        end = n
    return TokenKind.Comment, end - i


def _check_fixed(src: str, i: int):
    for text, kind in _FIXED:
        if src.startswith(text, i):
            return kind, len(text)
    return None


def _check_identifier(src: str, i: int):
    if not _is_identifier_start(src[i]):
        return None
    return TokenKind.Identifier, _run_length(src, i, _is_identifier_mid)


def _check_number(src: str, i: int):
    if not _is_number_start(src[i]):
        return None
    return TokenKind.Number, _run_length(src, i, _is_number_mid)


def _check_string(src: str, i: int):
    if src[i] != '"':
        return None
    end = src.find('"', i + 1)
    if end == -1:
        return None
    return TokenKind.String, end + 1 - i


_CHECKS = (
    _check_whitespace,
    _check_comment,
    _check_fixed,
    _check_identifier,
    _check_number,
    _check_string,
)


def _classify(src: str, i: int) -> tuple[TokenKind, int]:
    for check in _CHECKS:
        found = check(src, i)
        if found is not None:
            return found
    return TokenKind.Error, 1


def tokenize(filename: str, src: str) -> list[Token]:
    """Split source text into tokens; raise AsmError on an unexpected character."""
    tokens: list[Token] = []
    first_error: Optional[AsmError] = None
    index = 0
    while index < len(src):
        kind, length = _classify(src, index)
        span = Span(filename, (index, index + length))
        excerpt = src[index:index + length] if kind.needs_excerpt() else None
        if kind is TokenKind.Error and first_error is None:
            first_error = AsmError("unexpected character", span)
        tokens.append(Token(span, kind, excerpt))
        index += length

    if first_error is not None:
        raise first_error
    return tokens