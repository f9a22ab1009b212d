"""Line and column lookups over source text."""

from __future__ import annotations

from typing import Sequence


class CharCounter:
    """Answers position questions about a block of source characters."""

    def __init__(self, chars: Sequence[str]):
        self.chars = chars if isinstance(chars, str) else "".join(chars)

    def get_excerpt(self, start: int, end: int) -> str:
        return self.chars[start:end]

    def get_line_count(self) -> int:
        return self.chars.count("\n") + 1

    def get_line_column_at_index(self, index: int) -> tuple[int, int]:
        """Zero-based (line, column) of a character index, clamped to the text."""
        prefix = self.chars[:max(index, 0)]
        line = prefix.count("\n")
        column = len(prefix) - (prefix.rfind("\n") + 1)
        return line, column

    def get_index_range_of_line(self, line: int) -> tuple[int, int]:
        """Index range of a zero-based line, including its trailing line break."""
        length = len(self.chars)
        begin = 0
        for _ in range(line):
            newline = self.chars.find("\n", begin)
            if newline == -1:
                begin = length
                break
            begin = newline + 1
        newline = self.chars.find("\n", begin)
        end = length if newline == -1 else newline + 1
        return begin, end