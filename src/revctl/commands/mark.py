"""Command: mark commits reviewed or tested."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevCommand

if TYPE_CHECKING:
    from revctl.commands._context import AppContext


@click.command(
    cls=RevCommand,
    examples="""\
  revctl mark 1a2b3c4 --comment "looked at the locking"
  revctl mark HEAD
  revctl mark HEAD~2 HEAD~1 --tested
  revctl mark origin/main --checkpoint""",
)
@click.argument("commits", nargs=-1, required=True)
@click.option("--tested", is_flag=True, help="Mark as tested rather than just reviewed.")
@click.option("-m", "--comment", default=None, help="Comment stored with the mark.")
@click.option(
    "--checkpoint",
    is_flag=True,
    help="Also treat COMMITS as a horizon: older history is no longer listed as unreviewed.",
)
@click.pass_obj
def mark(
    app: AppContext, commits: tuple[str, ...], tested: bool, comment: str | None, checkpoint: bool
) -> None:
    """Record that COMMITS have been reviewed (a mark is never downgraded)."""
    from revctl.domain.marks import ReviewStatus
    from revctl.services.review import ReviewService

    status = ReviewStatus.TESTED if tested else ReviewStatus.REVIEWED
    app.emit(
        ReviewService(app.repo).mark(list(commits), status=status, comment=comment, checkpoint=checkpoint)
    )
