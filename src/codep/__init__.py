"""codep - list recently used VS Code locations for shell pipelines.

This package reads the editor's persisted JSON state (menu recents,
workspace storage, local history) and prints one location per line for
consumption by launchers, fuzzy finders and menu pickers.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
