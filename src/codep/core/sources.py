"""Adapters over the editor's persisted state.

Each adapter is a restartable iterable of :class:`RawEntry`; iterating it
again re-reads the disk. Layout under the config root:

    User/globalStorage/storage.json          menu bar snapshot (recent list)
    User/workspaceStorage/<id>/workspace.json   {"folder": "<uri>"}
    User/History/<id>/entries.json           {"resource": "<uri>", ...}

A broken top-level source raises :class:`StorageError`. A broken single
entry is logged and skipped.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from codep.core.result import StorageError

logger = logging.getLogger(__name__)

STORAGE_JSON = Path("User") / "globalStorage" / "storage.json"
WORKSPACE_STORAGE_DIR = Path("User") / "workspaceStorage"
HISTORY_DIR = Path("User") / "History"

RECENT_MENU_ID = "submenuitem.MenubarRecentMenu"
RECENT_FILE_ID = "openRecentFile"
RECENT_FOLDER_ID = "openRecentFolder"


class EntryKind(Enum):
    FILE = "file"
    DIR = "dir"


@dataclass(frozen=True, slots=True)
class RawEntry:
    kind: EntryKind
    uri: str
    modified_at: datetime | None = None
    # Local entries print as the bare path instead of the full URI.
    path_only: bool = False


class SourceAdapter(Protocol):
    """A lazy, finite, restartable sequence of raw entries."""

    timestamped: bool

    def __iter__(self) -> Iterator[RawEntry]: ...


def _get_path(value: Any, *keys: str) -> Any:
    """Walk nested objects, raising StorageError naming the first missing key."""
    walked: list[str] = []
    for key in keys:
        walked.append(key)
        if not isinstance(value, dict) or key not in value:
            raise StorageError("Unexpected menu structure", context={"missing": ".".join(walked)})
        value = value[key]
    return value


def _menu_item_uri(uri: Any) -> str | None:
    """Rebuild ``scheme://authority/path`` from a serialized editor URI object."""
    if not isinstance(uri, dict):
        return None
    path = uri.get("path")
    if not isinstance(path, str):
        return None
    scheme = uri.get("scheme")
    if not isinstance(scheme, str) or not scheme:
        scheme = "file"
    authority = uri.get("authority")
    if not isinstance(authority, str):
        authority = ""
    return f"{scheme}://{authority}{path}"


@dataclass
class MenuRecentSource:
    """Recent files/folders from the menu bar snapshot in ``storage.json``.

    Entries keep the editor's own order and carry no timestamp. Local
    entries print as their decoded, trimmed ``uri.path``.
    """

    config_root: Path
    include_files: bool = True
    include_dirs: bool = True
    timestamped: bool = False

    @property
    def storage_path(self) -> Path:
        return self.config_root / STORAGE_JSON

    def _load(self) -> Any:
        try:
            with self.storage_path.open(encoding="utf-8") as handle:
                return json.load(handle)
        except OSError as exc:
            raise StorageError(
                f"Cannot open {self.storage_path}", context={"error": exc.strerror or exc}
            ) from exc
        except (ValueError, RecursionError) as exc:
            raise StorageError(f"Invalid JSON in {self.storage_path}: {exc}") from exc

    def _recent_items(self) -> list[Any]:
        menu_items = _get_path(self._load(), "lastKnownMenubarData", "menus", "File", "items")
        if not isinstance(menu_items, list):
            raise StorageError("File menu items are not a list")
        recent = next(
            (
                item
                for item in menu_items
                if isinstance(item, dict) and item.get("id") == RECENT_MENU_ID
            ),
            None,
        )
        if recent is None:
            raise StorageError("Recent submenu not found in File menu")
        items = _get_path(recent, "submenu", "items")
        if not isinstance(items, list):
            raise StorageError("Recent submenu items are not a list")
        return items

    def _wanted_kind(self, item_id: Any) -> EntryKind | None:
        if item_id == RECENT_FILE_ID and self.include_files:
            return EntryKind.FILE
        if item_id == RECENT_FOLDER_ID and self.include_dirs:
            return EntryKind.DIR
        return None

    def __iter__(self) -> Iterator[RawEntry]:
        for item in self._recent_items():
            if not isinstance(item, dict):
                continue
            kind = self._wanted_kind(item.get("id"))
            if kind is None or item.get("enabled") is not True:
                continue
            uri = _menu_item_uri(item.get("uri"))
            if uri is None:
                logger.warning("Recent entry %r has no uri.path; skipping", item.get("label"))
                continue
            yield RawEntry(kind=kind, uri=uri, path_only=True)


@dataclass
class _SidecarDirectorySource:
    """Subdirectories of ``root`` that each hold a JSON sidecar with one URI field."""

    config_root: Path
    timestamped: bool = True

    relative_root = Path()
    sidecar_name = ""
    uri_field = ""
    kind = EntryKind.DIR

    @property
    def root(self) -> Path:
        return self.config_root / self.relative_root

    def _scan(self) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(self.root) as it:
                return sorted(it, key=lambda entry: entry.name)
        except OSError as exc:
            raise StorageError(
                f"Cannot list {self.root}", context={"error": exc.strerror or exc}
            ) from exc

    def _modified_at(self, entry: os.DirEntry[str]) -> datetime | None:
        try:
            if not entry.is_dir():
                logger.warning("Unexpected non-directory %s; skipping", entry.path)
                return None
            mtime = entry.stat().st_mtime
        except OSError as exc:
            logger.warning("Error reading %s: %s", entry.path, exc)
            return None
        return datetime.fromtimestamp(mtime, tz=UTC)

    def _read_uri(self, directory: Path) -> str | None:
        sidecar = directory / self.sidecar_name
        try:
            with sidecar.open(encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            logger.debug("No %s in %s", self.sidecar_name, directory)
            return None
        except (OSError, ValueError, RecursionError) as exc:
            logger.warning("Error reading %s: %s", sidecar, exc)
            return None
        value = data.get(self.uri_field) if isinstance(data, dict) else None
        if value is None:
            logger.debug("No %r field in %s", self.uri_field, sidecar)
            return None
        if not isinstance(value, str):
            logger.warning("Field %r in %s is not a string", self.uri_field, sidecar)
            return None
        return value

    def __iter__(self) -> Iterator[RawEntry]:
        for entry in self._scan():
            modified_at = self._modified_at(entry)
            if modified_at is None:
                continue
            uri = self._read_uri(Path(entry.path))
            if uri is not None:
                yield RawEntry(kind=self.kind, uri=uri, modified_at=modified_at)


@dataclass
class WorkspaceStorageSource(_SidecarDirectorySource):
    """Folders the editor opened, one ``workspace.json`` per storage directory."""

    relative_root = WORKSPACE_STORAGE_DIR
    sidecar_name = "workspace.json"
    uri_field = "folder"
    kind = EntryKind.DIR


@dataclass
class HistorySource(_SidecarDirectorySource):
    """Files with local history, one ``entries.json`` per history directory."""

    relative_root = HISTORY_DIR
    sidecar_name = "entries.json"
    uri_field = "resource"
    kind = EntryKind.FILE


__all__ = [
    "EntryKind",
    "RawEntry",
    "SourceAdapter",
    "MenuRecentSource",
    "WorkspaceStorageSource",
    "HistorySource",
]
