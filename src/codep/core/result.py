"""
Unified Result types and error hierarchy for codep.

This module provides:
1. Result[T, E] type for explicit error handling
2. Domain-specific exception hierarchy

Usage:
    from codep.core.result import Ok, Err, Result, DecodeError

    def decode(raw: str) -> Result[str, DecodeError]:
        if broken:
            return Err(DecodeError("Invalid percent escape"))
        return Ok(text)

    match decode(raw):
        case Ok(text):
            print(text)
        case Err(err):
            logger.warning("%s", err)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Represents a successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Return the contained value (ignores default for Ok)."""
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Represents a failed result containing an error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the contained error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        """Return the default value."""
        return default


# Type alias for Result
Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class CodepError(Exception):
    """Base exception for all codep errors.

    Carries an optional ``context`` mapping that is appended to the
    rendered message, so diagnostics can name the offending file or value.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class DecodeError(CodepError):
    """Raised when one of the decode layers rejects its input.

    Examples:
    - Truncated or non-hex percent escape
    - Percent-decoded bytes that are not valid UTF-8
    - Odd-length or non-hex remote payload
    """


class RemoteParseReason(Enum):
    """Why a remote identifier could not be split into its parts."""

    NO_TYPE_SEPARATOR = "NoTypeSeparator"
    NO_PATH_SEPARATOR = "NoPathSeparator"


class RemoteParseError(CodepError):
    """Raised when a ``vscode-remote://`` authority is not ``type+payload/path``."""

    def __init__(
        self, message: str, *, reason: RemoteParseReason, context: dict | None = None
    ) -> None:
        super().__init__(message, context=context)
        self.reason = reason


class StorageError(CodepError):
    """Raised when a top-level editor state source cannot be read.

    Examples:
    - storage.json missing or not valid JSON
    - Menu structure without the recent submenu
    - workspaceStorage directory cannot be listed
    """


class ConfigurationError(CodepError):
    """Raised for configuration issues.

    Examples:
    - Settings file parse errors
    - A max-age window that underflows the representable time range
    """


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "CodepError",
    "DecodeError",
    "RemoteParseReason",
    "RemoteParseError",
    "StorageError",
    "ConfigurationError",
]
