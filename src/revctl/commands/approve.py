"""Command: approve changed paths by content."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevCommand

if TYPE_CHECKING:
    from revctl.commands._context import AppContext


@click.command(
    cls=RevCommand,
    examples="""\
  revctl approve src/main.rs
  revctl approve 'src/*'
  revctl approve '*.proto' --level 2 --comment "checked wire compat"
  revctl approve 'docs/*' --range origin/main..topic""",
)
@click.argument("target")
@click.option(
    "-r", "--range", "range_arg", default=None, help="Range to approve in (default: against [range] default_base)."
)
@click.option(
    "-l",
    "--level",
    "scrutiny",
    type=click.IntRange(min=1),
    default=None,
    help="Scrutiny level (default: lowest unsatisfied rule level).",
)
@click.option("-m", "--comment", default=None, help="Free-form note stored with the approval.")
@click.pass_obj
def approve(app: AppContext, target: str, range_arg: str | None, scrutiny: int | None, comment: str | None) -> None:
    """Approve the content of changed paths matching TARGET (path or glob)."""
    from revctl.services.approve import ApprovalService

    app.emit(
        ApprovalService(app.repo).approve(target, range_arg=range_arg, scrutiny=scrutiny, comment=comment)
    )
