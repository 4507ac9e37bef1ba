"""Command: show the review rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.commands._base import RevCommand

if TYPE_CHECKING:
    from revctl.commands._context import AppContext


@click.command(
    cls=RevCommand,
    examples="""\
  revctl rules
  revctl rules src/main.rs proto/api.proto
  revctl --json rules --rev origin/main""",
)
@click.argument("paths", nargs=-1)
@click.option("--rev", default=None, help="Read the rule file from this revision.")
@click.pass_obj
def rules(app: AppContext, paths: tuple[str, ...], rev: str | None) -> None:
    """List all rules, or the rules that apply to PATHS."""
    from revctl.services.rules import RuleService

    svc = RuleService(app.repo)
    if paths:
        app.emit(svc.match(list(paths), rev=rev))
    else:
        app.emit(svc.load(rev=rev))
