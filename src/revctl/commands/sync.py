"""Command: exchange approvals and review marks with a remote."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevCommand

if TYPE_CHECKING:
    from revctl.commands._context import AppContext


@click.command(
    cls=RevCommand,
    examples="""\
  revctl sync
  revctl sync --remote upstream
  revctl sync --no-push --timeout 10""",
)
@click.option("--remote", default=None, help="Remote to sync with (default: [sync] remote).")
@click.option("--push/--no-push", default=None, help="Push merged annotations back (default: [sync] push).")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Overall network timeout in seconds.",
)
@click.pass_obj
def sync(app: AppContext, remote: str | None, push: bool | None, timeout: float | None) -> None:
    """Fetch, merge, and push the annotation namespaces."""
    from revctl.services.sync import SyncService

    app.emit(SyncService(app.repo).sync(remote, push=push, timeout=timeout))
