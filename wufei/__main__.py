"""Entry point for `python -m wufei`.

Usage:
    python -m wufei --namespace default --color
"""

from __future__ import annotations

from wufei.cli import cli

cli()
