"""Pluggy hook specifications for revctl lifecycle events.

Hooks run synchronously after the annotation write they describe has
been committed to its notes ref.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("revctl")


class RevctlHookSpec:
    """Hook specifications for the revctl plugin system."""

    @hookspec
    def post_approve(
        self,
        reviewer: str,
        scrutiny_levels: dict[str, int],
        content_ids: dict[str, str],
    ) -> None:
        """Called after approvals are recorded (keys are paths)."""

    @hookspec
    def post_mark(
        self,
        reviewer: str,
        status: str,
        commits: list[str],
    ) -> None:
        """Called after commits are marked reviewed/tested."""

    @hookspec
    def post_sync(
        self,
        remote: str,
        stats: dict[str, Any],
    ) -> None:
        """Called after a successful sync with *remote*."""
