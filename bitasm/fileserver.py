"""Access to source files, in memory or on disk."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from bitasm.charcounter import CharCounter
from bitasm.tokens import AsmError, Span


class FileServer(ABC):
    """Reads and writes files by name; failures raise AsmError."""

    @abstractmethod
    def exists(self, filename: str) -> bool:
        ...

    @abstractmethod
    def get_bytes(self, filename: str, span: Optional[Span] = None) -> bytes:
        ...

    def get_chars(self, filename: str, span: Optional[Span] = None) -> str:
        """The file decoded as UTF-8, with invalid bytes replaced."""
        return self.get_bytes(filename, span).decode("utf-8", errors="replace")

    @abstractmethod
    def write_bytes(self, filename: str, data: bytes, span: Optional[Span] = None) -> None:
        ...

    def get_excerpt(self, span: Span) -> str:
        """The source text a span covers, or "" if its file cannot be read."""
        try:
            chars = self.get_chars(span.file)
        except AsmError:
            return ""
        if span.location is None:
            raise ValueError("span has no location")
        return CharCounter(chars).get_excerpt(*span.location)


def _not_found(filename: str, span: Optional[Span]) -> AsmError:
    return AsmError(f"file not found: `{filename}`", span)


class MemoryFileServer(FileServer):
    """Files held in a dictionary."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def add(self, filename: str, contents: Union[str, bytes]) -> None:
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        self.files[filename] = bytes(contents)

    def exists(self, filename: str) -> bool:
        return filename in self.files

    def get_bytes(self, filename: str, span: Optional[Span] = None) -> bytes:
        try:
            return self.files[filename]
        except KeyError:
            raise _not_found(filename, span) from None

    def write_bytes(self, filename: str, data: bytes, span: Optional[Span] = None) -> None:
        self.files[filename] = bytes(data)


class DiskFileServer(FileServer):
    """Files on the local file system."""

    def exists(self, filename: str) -> bool:
        return Path(filename).exists()

    def get_bytes(self, filename: str, span: Optional[Span] = None) -> bytes:
        path = Path(filename)
        if not path.exists():
            raise _not_found(filename, span)
        try:
            handle = path.open("rb")
        except OSError as err:
            raise AsmError(f"could not open file `{filename}`: {err}", span) from err
        with handle:
            try:
                return handle.read()
            except OSError as err:
                raise AsmError(f"could not read file `{filename}`: {err}", span) from err

    def write_bytes(self, filename: str, data: bytes, span: Optional[Span] = None) -> None:
        try:
            handle = Path(filename).open("wb")
        except OSError as err:
            raise AsmError(f"could not create file `{filename}`: {err}", span) from err
        with handle:
            try:
                handle.write(bytes(data))
            except OSError as err:
                raise AsmError(f"could not write to file `{filename}`: {err}", span) from err