"""CLI package for printprep.

Usage:
    from printprep.cli import app
"""

from __future__ import annotations

from printprep.cli.main import app

__all__ = ["app"]
