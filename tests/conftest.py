from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def ensure_commands_registered() -> None:
    """Ensure CLI commands are registered before tests run."""
    from codep.main import _register_commands

    _register_commands()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point settings to a temp path so tests don't touch user state."""
    cfg_path = tmp_path / "codep.toml"
    monkeypatch.setenv("CODEP_SETTINGS", str(cfg_path))
    for key in list(os.environ):
        if key.startswith("CODEP_") and key != "CODEP_SETTINGS":
            monkeypatch.delenv(key)
    return cfg_path


@pytest.fixture(autouse=True)
def capture_console(monkeypatch: Any) -> Console:
    """Use an in-memory Rich console during tests."""
    test_console = Console(record=True)
    import codep.core.console as core_console
    import codep.main as codep_main

    monkeypatch.setattr(core_console, "console", test_console)
    monkeypatch.setattr(codep_main, "console", test_console)
    return test_console


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def menu_item(item_id: str, path: str, *, enabled: bool = True, **uri: str) -> dict[str, Any]:
    return {
        "id": item_id,
        "label": path,
        "enabled": enabled,
        "uri": {"$mid": 1, "path": path, "scheme": "file", **uri},
    }


def storage_json(items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "lastKnownMenubarData": {
            "menus": {
                "File": {
                    "items": [
                        {"id": "workbench.action.files.newUntitledFile", "label": "&&New Text File"},
                        {
                            "id": "submenuitem.MenubarRecentMenu",
                            "label": "Open &&Recent",
                            "submenu": {"items": items},
                        },
                    ]
                }
            }
        }
    }


@pytest.fixture
def config_root(tmp_path: Path) -> Path:
    root = tmp_path / "Code"
    root.mkdir()
    return root


@pytest.fixture
def make_storage(config_root: Path):
    def _make(items: list[dict[str, Any]]) -> Path:
        return write_json(
            config_root / "User" / "globalStorage" / "storage.json", storage_json(items)
        )

    return _make


@pytest.fixture
def make_sidecar_dir(config_root: Path):
    """Create ``User/<area>/<name>/<sidecar>`` with a given mtime."""

    def _make(area: str, name: str, sidecar: str, data: Any, mtime: float | None = None) -> Path:
        directory = config_root / "User" / area / name
        directory.mkdir(parents=True, exist_ok=True)
        if data is not None:
            write_json(directory / sidecar, data)
        if mtime is not None:
            os.utime(directory, (mtime, mtime))
        return directory

    return _make


@pytest.fixture(name="menu_item")
def menu_item_fixture():
    return menu_item
