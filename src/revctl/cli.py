"""Root CLI group for revctl with global flags and command registration."""

from __future__ import annotations

import click

from revctl import __version__
from revctl.commands import register_commands
from revctl.commands._base import RevGroup
from revctl.commands._context import AppContext
from revctl.config.settings import RevSettings


@click.group(
    cls=RevGroup,
    invoke_without_command=True,
    examples="""\
  revctl status
  revctl approve 'src/*'
  revctl unreviewed --skip-own
  revctl mark HEAD --tested
  revctl sync""",
)
@click.version_option(version=__version__, prog_name="revctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output (ids only).")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logs and timings.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """revctl: path-based review policy tracked in git notes."""
    ctx.ensure_object(dict)
    settings = RevSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
