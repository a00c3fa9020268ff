"""Record decoding, JSON key filtering and prefix decoration."""

from __future__ import annotations

import json
import random

import click

# Foreground colors understood by click.style.
COLOR_PALETTE: tuple[str, ...] = (
    "green",
    "red",
    "yellow",
    "blue",
    "cyan",
    "magenta",
    "white",
    "bright_black",
    "bright_red",
    "bright_green",
    "bright_yellow",
    "bright_blue",
    "bright_magenta",
    "bright_cyan",
)


def pick_color(rng: random.Random | None = None) -> str:
    """Choose a palette color uniformly at random."""
    return (rng or random).choice(COLOR_PALETTE)


def decorate_prefix(prefix: str, color: str | None = None) -> str:
    return click.style(prefix, fg=color) if color else prefix


def has_json_key(text: str, key: str) -> bool:
    """True when *text* is a JSON object whose *key* holds a non-null value."""
    try:
        payload = json.loads(text)
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get(key) is not None


def render_record(record: bytes, prefix: str, json_key: str | None = None) -> str | None:
    """Turn one raw log record into a decorated line.

    Returns None when *json_key* is set and the record does not carry it.
    Empty records still render as a bare prefix.
    """
    text = record.decode("utf-8", errors="replace").rstrip("\r\n")
    if json_key is not None and not has_json_key(text, json_key):
        return None
    return f"{prefix}: {text}"
