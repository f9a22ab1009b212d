"""Validation and navigation of project-relative file names."""

from __future__ import annotations

from pathlib import PureWindowsPath

from bitasm.tokens import AsmError, Span


def filename_validate(filename: str, span: Span) -> None:
    """Reject names that carry a drive or share prefix."""
    if PureWindowsPath(filename).drive:
        raise AsmError("invalid filename", span)


def filename_navigate(current: str, nav: str, span: Span) -> str:
    """Resolve ``nav`` relative to the directory of ``current``."""
    current = current.replace("\\", "/")
    nav = nav.replace("\\", "/")
    filename_validate(nav, span)

    components = [] if nav.startswith("/") else current.split("/")[:-1]
    components.extend(nav.split("/"))

    resolved: list[str] = []
    for part in components:
        if part in ("", "."):
            continue
        if part == "..":
            if not resolved:
                raise AsmError("cannot navigate out of project directory", span)
            resolved.pop()
            continue
        resolved.append(part)

    return "/".join(resolved)