"""
preserve CLI — Typer application.

Usage::

    preserve --help
    preserve list --plugins myproject.plugins
    preserve plan ipfs --plugins myproject.plugins
    preserve run --plugins myproject.plugins --loader fs --recipe ipfs
"""

from preserve.cli.app import app

__all__ = ["app"]
