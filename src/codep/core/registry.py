from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class CommandSpec:
    name: str
    handler: Callable[..., None]


_FUNCTION_COMMANDS: dict[str, dict[str, str]] = {
    "listing": {"recent": "recent", "workspaces": "workspaces", "history": "history"},
}


def _import_module(module_name: str) -> object | None:
    try:
        return importlib.import_module(module_name)
    except ImportError as exc:  # pragma: no cover - defensive
        logger.error("Failed to import command module %s: %s", module_name, exc)
        return None


def _build_function_commands(module_name: str, module: object) -> list[CommandSpec]:
    specs: list[CommandSpec] = []
    for cmd_name, attr in _FUNCTION_COMMANDS.get(module_name, {}).items():
        handler = getattr(module, attr, None)
        if callable(handler):
            specs.append(CommandSpec(name=cmd_name, handler=handler))
        else:  # pragma: no cover - defensive
            logger.error("Command %s.%s not found or not callable", module_name, attr)
    return specs


def discover_commands(package_path: Path, package: str = "codep.commands") -> list[CommandSpec]:
    """Import every command module under ``package_path`` and collect its commands."""
    function_commands: list[CommandSpec] = []

    for file in sorted(package_path.glob("*.py")):
        if file.name.startswith("_"):
            continue
        module = _import_module(f"{package}.{file.stem}")
        if module is None:
            continue
        function_commands.extend(_build_function_commands(file.stem, module))

    return function_commands
