"""Percent-decoding and scheme classification for editor URIs.

The editor persists locations as URIs such as ``file:///home/me/proj`` or
``vscode-remote://ssh-remote+7b22...7d/home/me``. This module holds the
first decode layer (percent escapes) and the prefix test that decides how
a decoded URI is displayed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote, unquote_to_bytes

from codep.core.result import DecodeError, Err, Ok, Result

FILE_PREFIX = "file://"
REMOTE_PREFIX = "vscode-remote://"

# A '%' must introduce exactly two hex digits.
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_UNSAFE_OUTPUT_CHARS = str.maketrans("", "", "\t\n\0")


class SchemeClass(Enum):
    LOCAL = "local"
    REMOTE = "remote"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True, slots=True)
class SchemeFilters:
    """Which URI schemes the caller wants to see."""

    include_local: bool = True
    include_remote: bool = False


@dataclass(frozen=True, slots=True)
class ClassifiedUri:
    scheme: SchemeClass
    payload: str


def decode(raw: str) -> Result[str, DecodeError]:
    """Percent-decode ``raw`` into text.

    Fails on a '%' that is not followed by two hex digits, and on escaped
    bytes that do not form valid UTF-8. Never substitutes replacement
    characters.
    """
    bad = _BAD_ESCAPE.search(raw)
    if bad is not None:
        return Err(
            DecodeError(
                "Invalid percent escape",
                context={"offset": bad.start(), "near": raw[bad.start() : bad.start() + 3]},
            )
        )
    try:
        return Ok(unquote_to_bytes(raw).decode("utf-8"))
    except UnicodeDecodeError as exc:
        return Err(DecodeError("Percent-decoded bytes are not UTF-8", context={"reason": exc.reason}))


def encode(text: str) -> str:
    """Percent-encode ``text`` the way the editor stores URIs (keeps '/' and ':')."""
    return quote(text, safe="/:+")


def scheme_of(decoded_uri: str) -> SchemeClass:
    if decoded_uri.startswith(FILE_PREFIX):
        return SchemeClass.LOCAL
    if decoded_uri.startswith(REMOTE_PREFIX):
        return SchemeClass.REMOTE
    return SchemeClass.UNRECOGNIZED


def classify(decoded_uri: str, filters: SchemeFilters) -> ClassifiedUri | None:
    """Classify a decoded URI, or return ``None`` when it is filtered out.

    For local URIs the payload is the path after ``file://``; for remote
    URIs it is everything after ``vscode-remote://`` and is meant for
    :func:`codep.core.remote.resolve_remote`.
    """
    scheme = scheme_of(decoded_uri)
    if scheme is SchemeClass.LOCAL and filters.include_local:
        return ClassifiedUri(scheme, sanitize(decoded_uri[len(FILE_PREFIX) :]))
    if scheme is SchemeClass.REMOTE and filters.include_remote:
        return ClassifiedUri(scheme, sanitize(decoded_uri[len(REMOTE_PREFIX) :]))
    return None


def sanitize(value: str) -> str:
    """Strip tab, newline and NUL, which delimit fields and records in the output."""
    return value.translate(_UNSAFE_OUTPUT_CHARS)


__all__ = [
    "FILE_PREFIX",
    "REMOTE_PREFIX",
    "SchemeClass",
    "SchemeFilters",
    "ClassifiedUri",
    "decode",
    "encode",
    "scheme_of",
    "classify",
    "sanitize",
]
