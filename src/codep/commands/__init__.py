"""CLI command modules for codep.

    - listing: recent, workspaces and history listings
"""

from __future__ import annotations

from . import listing

__all__ = ["listing"]
