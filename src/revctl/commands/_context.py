"""AppContext: shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Opens the repository lazily and routes results to
stdout/stderr with the right exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from revctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from revctl.config.settings import RevSettings
    from revctl.infrastructure.repository import ReviewRepository
    from revctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The repository is opened on first use so ``--help`` and ``--version``
    work outside a git work tree.
    """

    def __init__(self, settings: RevSettings) -> None:
        self.settings = settings
        self._repo: ReviewRepository | None = None

        from revctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from revctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def repo(self) -> ReviewRepository:
        """The repository (opened lazily on first access)."""
        if self._repo is None:
            from revctl.infrastructure.git import GitError
            from revctl.infrastructure.repository import ReviewRepository

            try:
                self._repo = ReviewRepository(self.settings)
            except GitError as exc:
                raise click.ClickException(f"Not a git repository: {self.settings.repo_root}") from exc
            self._repo.init_plugins()
        return self._repo

    def emit(self, result: ServiceResult, *, exit_code: int = 0) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr unless in JSON mode, where
          they are part of the payload. A non-zero *exit_code* still exits
          after printing (``status`` with unmet requirements).
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            if output:
                click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
            if exit_code:
                raise SystemExit(exit_code)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
