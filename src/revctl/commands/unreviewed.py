"""Command: list commits nobody has marked."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevCommand

if TYPE_CHECKING:
    from revctl.commands._context import AppContext


@click.command(
    cls=RevCommand,
    examples="""\
  revctl unreviewed
  revctl unreviewed origin/main..HEAD --skip-own
  revctl -q unreviewed --skip-merges | xargs revctl mark""",
)
@click.argument("range_arg", metavar="[RANGE]", required=False)
@click.option("--skip-own", is_flag=True, help="Hide commits authored by you.")
@click.option("--skip-merges", is_flag=True, help="Hide merge commits.")
@click.pass_obj
def unreviewed(app: AppContext, range_arg: str | None, skip_own: bool, skip_merges: bool) -> None:
    """List unmarked commits of RANGE, oldest first."""
    from revctl.services.review import ReviewService

    app.emit(ReviewService(app.repo).list_unreviewed(range_arg, skip_own=skip_own, skip_merges=skip_merges))
