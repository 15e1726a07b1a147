"""Remote workspace identifier resolution.

A remote folder URI looks like::

    vscode-remote://dev-container+7b22686f737450617468223a222f7372632f617070227d/workspaces/app

The authority is ``<remoteType>+<hexPayload>``; the payload is hex-packed
UTF-8 JSON describing where the folder really lives. Resolution runs three
independent layers, each with its own fallback:

    1. split_remote_identifier(): text -> RemoteIdentifier (hard failure)
    2. hex_decode(): hex -> UTF-8 text (falls back to the raw payload)
    3. parse_payload(): text -> JSON object (falls back to the decoded text)
"""

from __future__ import annotations

import html
import json
import string
from dataclasses import dataclass
from enum import Enum
from typing import Any

from codep.core.result import DecodeError, Err, Ok, RemoteParseError, RemoteParseReason, Result

REMOTE_TYPE_LABELS: dict[str, str] = {
    "dev-container": "Dev Container",
    "ssh-remote": "SSH Remote",
}

_HEX_DIGITS = frozenset(string.hexdigits)


class Qualifier(Enum):
    REPOSITORY = "repository"
    VOLUME = "volume"
    UNKNOWN = "unknown"


# Probed in order; the first string-valued key wins.
PAYLOAD_KEYS: tuple[tuple[str, Qualifier | None], ...] = (
    ("hostPath", None),
    ("repositoryPath", Qualifier.REPOSITORY),
    ("volumeName", Qualifier.VOLUME),
)


@dataclass(frozen=True, slots=True)
class RemoteIdentifier:
    remote_type: str
    hex_payload: str
    tail_path: str


@dataclass(frozen=True, slots=True)
class RemoteHint:
    remote_type_label: str
    qualifier: Qualifier | None = None

    def render(self, markup: bool = False) -> str:
        inner = self.remote_type_label
        if self.qualifier is not None:
            inner = f"{inner}|{self.qualifier.value}"
        if markup:
            return f"<i>({html.escape(inner, quote=False)})</i>"
        return f"({inner})"


@dataclass(frozen=True, slots=True)
class RemoteDisplayInfo:
    primary_value: str
    hint: RemoteHint | None = None

    def render(self, markup: bool = False) -> str:
        """Return ``primary (Label|qualifier)``, optionally with the hint in markup."""
        if self.hint is None:
            return self.primary_value
        primary = html.escape(self.primary_value, quote=False) if markup else self.primary_value
        return f"{primary} {self.hint.render(markup)}"


def remote_type_label(remote_type: str) -> str:
    return REMOTE_TYPE_LABELS.get(remote_type, remote_type)


def split_remote_identifier(tail: str) -> Result[RemoteIdentifier, RemoteParseError]:
    """Split ``<remoteType>+<hexPayload>/<tailPath>`` at the first '+' and the next '/'."""
    type_end = tail.find("+")
    if type_end < 0:
        return Err(
            RemoteParseError(
                "No '+' between remote type and payload",
                reason=RemoteParseReason.NO_TYPE_SEPARATOR,
                context={"value": tail},
            )
        )
    payload_start = type_end + 1
    payload_end = tail.find("/", payload_start)
    if payload_end < 0:
        return Err(
            RemoteParseError(
                "No '/' after the remote payload",
                reason=RemoteParseReason.NO_PATH_SEPARATOR,
                context={"value": tail},
            )
        )
    return Ok(
        RemoteIdentifier(
            remote_type=tail[:type_end],
            hex_payload=tail[payload_start:payload_end],
            tail_path=tail[payload_end + 1 :],
        )
    )


def hex_decode(payload: str) -> Result[str, DecodeError]:
    """Decode a hex string two digits at a time into UTF-8 text."""
    if len(payload) % 2:
        return Err(DecodeError("Odd-length hex payload", context={"length": len(payload)}))
    if not _HEX_DIGITS.issuperset(payload):
        return Err(DecodeError("Non-hex digit in payload"))
    try:
        return Ok(bytes.fromhex(payload).decode("utf-8"))
    except UnicodeDecodeError as exc:
        return Err(DecodeError("Hex payload is not UTF-8", context={"reason": exc.reason}))


def parse_payload(text: str) -> dict[str, Any] | None:
    """Parse decoded payload text, returning the JSON object or ``None``."""
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def describe_payload(remote_type: str, decoded: str) -> RemoteDisplayInfo:
    label = remote_type_label(remote_type)
    obj = parse_payload(decoded)
    if obj is not None:
        for key, qualifier in PAYLOAD_KEYS:
            value = obj.get(key)
            if isinstance(value, str):
                return RemoteDisplayInfo(value, RemoteHint(label, qualifier))
    return RemoteDisplayInfo(decoded, RemoteHint(label))


def resolve_remote(decoded_uri_tail: str) -> Result[RemoteDisplayInfo, RemoteParseError]:
    """Derive the display string for everything after ``vscode-remote://``.

    Only a missing separator is an error. An undecodable payload degrades
    to showing the raw hex with the unmapped remote type as the label, so
    the entry is never dropped for it.
    """
    match split_remote_identifier(decoded_uri_tail):
        case Err(err):
            return Err(err)
        case Ok(ident):
            pass

    match hex_decode(ident.hex_payload):
        case Err(_):
            return Ok(RemoteDisplayInfo(ident.hex_payload, RemoteHint(ident.remote_type)))
        case Ok(decoded):
            return Ok(describe_payload(ident.remote_type, decoded))


__all__ = [
    "REMOTE_TYPE_LABELS",
    "Qualifier",
    "RemoteIdentifier",
    "RemoteHint",
    "RemoteDisplayInfo",
    "remote_type_label",
    "split_remote_identifier",
    "hex_decode",
    "parse_payload",
    "describe_payload",
    "resolve_remote",
]
