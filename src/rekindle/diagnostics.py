"""Compile diagnostics — warnings and fatal failures with source excerpts.

A diagnostic is either a ``CompileWarning`` (non-fatal, accumulated per
compile cycle) or a ``CompileFailure`` (the cycle's fatal exception).  Both
are frozen dataclasses that convert to and from the plain records carried
by the outbound diagnostics payload::

    warning:   {message, line, column, file?, excerpt?}
    exception: {type, tag, message, line, column, file?, excerpt?}

Consumers match on the variant with ``match``/``case``.
"""

from __future__ import annotations

import linecache
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from rekindle._errors import CompileError


@dataclass(frozen=True, slots=True)
class CompileWarning:
    """A non-fatal compiler diagnostic.

    Attributes:
        message: Human readable description.
        line: 1-based line of the offending form (0 when unknown).
        column: 1-based column (0 when unknown).
        file: Source file, if the compiler reported one.
        excerpt: Source lines around the location, if readable.

    """

    message: str
    line: int = 0
    column: int = 0
    file: str | None = None
    excerpt: str | None = None

    @property
    def summary(self) -> str:
        """One-line form used when a warning is appended to the overlay."""
        return f"{_location(self.file, self.line, self.column)}{self.message}"

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }
        if self.file is not None:
            record["file"] = self.file
        if self.excerpt is not None:
            record["excerpt"] = self.excerpt
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> CompileWarning:
        return cls(
            message=str(record.get("message", "")),
            line=int(record.get("line") or 0),
            column=int(record.get("column") or 0),
            file=record.get("file"),
            excerpt=record.get("excerpt"),
        )


@dataclass(frozen=True, slots=True)
class CompileFailure:
    """The fatal exception of a compile cycle.

    Attributes:
        type: Qualified name of the exception class.
        tag: Short machine-readable category of the failure.
        message: ``str()`` of the exception.
        line: 1-based line (0 when unknown).
        column: 1-based column (0 when unknown).
        file: Source file, if known.
        excerpt: Source lines around the location, if readable.

    """

    type: str
    tag: str
    message: str
    line: int = 0
    column: int = 0
    file: str | None = None
    excerpt: str | None = None

    @property
    def summary(self) -> str:
        return f"{_location(self.file, self.line, self.column)}{self.type}: {self.message}"

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "type": self.type,
            "tag": self.tag,
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }
        if self.file is not None:
            record["file"] = self.file
        if self.excerpt is not None:
            record["excerpt"] = self.excerpt
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> CompileFailure:
        return cls(
            type=str(record.get("type", "Exception")),
            tag=str(record.get("tag", "compile-failed")),
            message=str(record.get("message", "")),
            line=int(record.get("line") or 0),
            column=int(record.get("column") or 0),
            file=record.get("file"),
            excerpt=record.get("excerpt"),
        )

    @classmethod
    def from_exception(cls, exc: BaseException, *, context: int = 2) -> CompileFailure:
        """Describe ``exc``, preferring the location a CompileError carries."""
        if isinstance(exc, CompileError):
            file, line, column, tag = exc.file, exc.line, exc.column, exc.tag
        else:
            file, line = _extract_error_location(exc)
            column, tag = 0, "compile-failed"
        return cls(
            type=type(exc).__qualname__,
            tag=tag,
            message=str(exc),
            line=line,
            column=column,
            file=file or None,
            excerpt=extract_excerpt(file, line, context=context),
        )


Diagnostic: TypeAlias = CompileWarning | CompileFailure


def describe(diagnostic: Diagnostic) -> str:
    """Return a one-line description of either diagnostic variant."""
    match diagnostic:
        case CompileWarning():
            return f"warning: {diagnostic.summary}"
        case CompileFailure():
            return f"error: {diagnostic.summary}"


def _location(file: str | None, line: int, column: int) -> str:
    if not file:
        return ""
    if line and column:
        return f"{file}:{line}:{column}: "
    if line:
        return f"{file}:{line}: "
    return f"{file}: "


# ---------------------------------------------------------------------------
# Source excerpt extraction
# ---------------------------------------------------------------------------


def extract_excerpt(filename: str | None, lineno: int, *, context: int = 2) -> str | None:
    """Read source lines around ``lineno`` and mark the offending one.

    Returns None when the file is unknown or unreadable.

    """
    if not filename or lineno <= 0:
        return None

    linecache.checkcache(filename)
    start = max(1, lineno - context)
    end = lineno + context

    lines: list[str] = []
    for i in range(start, end + 1):
        line = linecache.getline(filename, i)
        if not line and i >= lineno:
            break
        marker = ">" if i == lineno else " "
        lines.append(f"{marker} {i:>4} | {line.rstrip()}")

    if not any(entry.startswith(">") for entry in lines):
        return None
    return "\n".join(lines)


def _extract_error_location(exc: BaseException) -> tuple[str, int]:
    """Extract the innermost filename and line number from a traceback."""
    tb = exc.__traceback__
    if tb is None:
        return "", 0

    while tb.tb_next is not None:
        tb = tb.tb_next

    return tb.tb_frame.f_code.co_filename, tb.tb_lineno
