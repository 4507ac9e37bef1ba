"""Command group: merge-request tracking."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevGroup

if TYPE_CHECKING:
    from revctl.commands._context import AppContext

_MR_EXAMPLES = """\
  revctl mr fetch
  revctl mr list
  revctl mr list --all
  revctl mr status 42
  revctl mr status 42 --version 2"""


@click.group(cls=RevGroup, examples=_MR_EXAMPLES)
@click.pass_obj
def mr(app: AppContext) -> None:
    """Track merge requests and their pushed versions."""


@mr.command(
    examples="""\
  revctl mr fetch
  revctl --json mr fetch"""
)
@click.pass_obj
def fetch(app: AppContext) -> None:
    """Refresh cached merge requests from the tracker."""
    from revctl.services.merge_requests import MergeRequestService

    app.emit(MergeRequestService(app.repo).fetch())


@mr.command(
    name="list",
    examples="""\
  revctl mr list
  revctl mr list --all""",
)
@click.option("--all", "show_all", is_flag=True, help="Include drafts and your own merge requests.")
@click.pass_obj
def list_cmd(app: AppContext, show_all: bool) -> None:
    """List cached merge requests with unreviewed commit counts."""
    from revctl.services.merge_requests import MergeRequestService

    app.emit(MergeRequestService(app.repo).list_cached(show_all=show_all))


@mr.command(
    name="status",
    examples="""\
  revctl mr status 42
  revctl mr status 42 --version 1""",
)
@click.argument("iid", type=int)
@click.option(
    "--version", "version", type=click.IntRange(min=1), default=None, help="Version number (default: latest)."
)
@click.pass_obj
def status_cmd(app: AppContext, iid: int, version: int | None) -> None:
    """Evaluate review requirements on a merge-request version."""
    from revctl.services.merge_requests import MergeRequestService

    result = MergeRequestService(app.repo).status(iid, version=version)
    app.emit(result, exit_code=0 if result.data.get("satisfied", True) else 1)
