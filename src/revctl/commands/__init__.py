"""Subcommand modules for revctl.

``register_commands()`` defers imports so ``revctl --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every command group and standalone command on the root group."""
    # --- Groups ---
    from revctl.commands.mr import mr

    cli.add_command(mr)

    # --- Standalone commands ---
    from revctl.commands.approve import approve
    from revctl.commands.mark import mark
    from revctl.commands.rules import rules
    from revctl.commands.status import status
    from revctl.commands.sync import sync
    from revctl.commands.unreviewed import unreviewed

    cli.add_command(status)
    cli.add_command(approve)
    cli.add_command(mark)
    cli.add_command(unreviewed)
    cli.add_command(sync)
    cli.add_command(rules)
