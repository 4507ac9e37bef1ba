"""Scrutiny levels: a total order over positive integers.

A level is written as a run of exclamation marks whose length is the
level (``!`` = 1, ``!!`` = 2). An approval recorded at level L counts
toward any requirement at level <= L.
"""

from __future__ import annotations

MARKER_CHAR = "!"


def satisfies(have: int, need: int) -> bool:
    """Whether an approval at *have* meets a requirement at *need*."""
    return have >= need


def parse_marker(marker: str) -> int:
    """Parse a ``!``-run into its level.

    Raises:
        ValueError: if *marker* is empty or contains anything but ``!``.

    Examples:
        >>> parse_marker("!!")
        2
    """
    if not marker or marker.strip(MARKER_CHAR):
        msg = f"scrutiny marker must be one or more '{MARKER_CHAR}', got {marker!r}"
        raise ValueError(msg)
    return len(marker)


def format_marker(level: int) -> str:
    """Render *level* back to its ``!``-run."""
    if level < 1:
        msg = f"scrutiny level must be positive, got {level}"
        raise ValueError(msg)
    return MARKER_CHAR * level
