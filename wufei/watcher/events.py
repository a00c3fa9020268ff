"""Pod name extraction from creation event messages."""

from __future__ import annotations

from wufei.errors import EventParseError


def parse_created_pod(message: str) -> str:
    """Return the pod name from a message such as ``"Created pod: web-3"``.

    The name is the first token after the first ``:``.

    Raises:
        EventParseError: the message has no ``:`` or nothing follows it.
    """
    _, sep, rest = message.partition(":")
    tokens = rest.split()
    if not sep or not tokens:
        raise EventParseError(f"no pod name in event message {message!r}")
    return tokens[0]
