"""
CLI layer for the migrator.

Terminal transport only: argument parsing, settings overrides and
coloured output. All migration logic lives in ``migrator.migrations``.

Entry point::

    migrator --help
"""

from migrator.cli.app import app

__all__ = ["app"]
