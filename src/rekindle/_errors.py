"""Rekindle error hierarchy.

All rekindle-specific errors inherit from RekindleError for easy catching.
"""

from __future__ import annotations


class RekindleError(Exception):
    """Base error for all rekindle operations."""


class ConfigError(RekindleError):
    """Invalid or missing configuration."""


class CompileError(RekindleError):
    """A compile cycle failed fatally.

    Compilers may raise this to attach a source location and a short tag
    (e.g. ``"reader-exception"``) to the failure.  Any other exception type
    raised by a compiler is accepted too; its location is then taken from
    the traceback.

    """

    def __init__(
        self,
        message: str,
        *,
        file: str | None = None,
        line: int = 0,
        column: int = 0,
        tag: str = "compile-failed",
    ) -> None:
        super().__init__(message)
        self.file = file
        self.line = line
        self.column = column
        self.tag = tag


class TransportError(RekindleError):
    """The evaluation channel failed to deliver a payload."""


class ReloadExecutionError(RekindleError):
    """A module raised while being re-required in the client."""

    def __init__(self, namespace: str) -> None:
        super().__init__(f"reloading {namespace!r} failed")
        self.namespace = namespace
