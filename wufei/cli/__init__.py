"""Wufei command-line interface.

Exposes:
    cli -- Click command entry point (registered as ``wufei`` script).
"""

from wufei.cli.main import cli

__all__ = ["cli"]
