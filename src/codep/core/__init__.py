"""Core shared infrastructure for codep.

This package contains the building blocks used by every command:
    - config: Application configuration management
    - console: Rich console output and logging
    - result: Result types and error hierarchy
    - uri: Percent-decoding and scheme classification
    - remote: Remote workspace identifier resolution
    - sources: Adapters over the editor's on-disk state
    - pipeline: Filtering, ordering and rendering of entries
"""

from __future__ import annotations

from . import config, console

__all__ = ["config", "console"]
