"""Embedding of Toggl entry ids in worklog comments.

A synced worklog carries the id of the time entry it came from as a marker
at the end of its comment::

    Fixed login redirect [[sync:3141592653]]

The marker format is persisted in Jira and must not change, or worklogs
written by earlier versions stop being recognized.
"""

import re

MARKER_PREFIX = "[[sync:"
MARKER_SUFFIX = "]]"

_ID_PATTERN = r"[^\s\[\]]+"
_VALID_ID = re.compile(_ID_PATTERN)
_MARKER = re.compile(rf"\[\[sync:({_ID_PATTERN})\]\]")
_MARKER_WITH_SEPARATOR = re.compile(rf" ?\[\[sync:{_ID_PATTERN}\]\]")


def encode(correlation_id: str, text: str = "") -> str:
    """Append a marker for correlation_id to text.

    Any marker already in text is replaced, so encoding is idempotent.

    Args:
        correlation_id: Id to embed.
        text: Human-readable comment.

    Returns:
        Comment carrying the marker.

    Raises:
        ValueError: If the id is empty or contains whitespace or brackets.
    """
    if not _VALID_ID.fullmatch(correlation_id or ""):
        raise ValueError(f"Invalid correlation id: {correlation_id!r}")

    text = strip(text)
    marker = f"{MARKER_PREFIX}{correlation_id}{MARKER_SUFFIX}"
    return f"{text} {marker}" if text else marker


def decode(text: str | None) -> str | None:
    """Extract the correlation id from a comment.

    Returns:
        The id, or None when the comment carries no well-formed marker.
    """
    if not text:
        return None
    match = _MARKER.search(text)
    return match.group(1) if match else None


def strip(text: str | None) -> str:
    """Return the human-readable part of a comment, without its marker."""
    if not text:
        return ""
    return _MARKER_WITH_SEPARATOR.sub("", text)
