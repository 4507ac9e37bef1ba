"""Rich Console factory and theme for revctl output.

Consoles render into a StringIO buffer so ``format_result()`` can keep
returning a string. Without a terminal (tests, pipes) Rich drops colour.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

REV_THEME = Theme(
    {
        "rev.ok": "bold green",
        "rev.error": "bold red",
        "rev.warning": "bold yellow",
        "rev.op": "bold cyan",
        "rev.key": "dim",
        "rev.oid": "bold blue",
        "rev.path": "bold",
        "rev.pattern": "magenta",
        "rev.met": "green",
        "rev.unmet": "red",
        "rev.kind.ours": "dim",
        "rev.kind.merge": "yellow",
        "rev.kind.new": "",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (keeps test output stable).
    """
    return Console(
        file=StringIO(),
        theme=REV_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_kind(kind: str) -> str:
    """Rich style name for an unreviewed-commit kind."""
    return f"rev.kind.{kind}" if kind in ("ours", "merge", "new") else ""
