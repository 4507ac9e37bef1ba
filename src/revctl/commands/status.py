"""Command: review requirement status of a range."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevCommand

if TYPE_CHECKING:
    from revctl.commands._context import AppContext


@click.command(
    cls=RevCommand,
    examples="""\
  revctl status
  revctl status feature/login
  revctl status origin/main..HEAD
  revctl --json status v1.2...topic""",
)
@click.argument("range_arg", metavar="[RANGE]", required=False)
@click.pass_obj
def status(app: AppContext, range_arg: str | None) -> None:
    """Show which changed paths still need approvals.

    Exits 0 when every matching rule is satisfied, 1 otherwise.
    """
    from revctl.services.status import StatusService

    result = StatusService(app.repo).status(range_arg)
    app.emit(result, exit_code=0 if result.data.get("satisfied", True) else 1)
