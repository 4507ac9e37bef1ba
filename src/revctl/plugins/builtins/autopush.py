"""Built-in auto-push plugin.

When ``[sync] auto_push`` is set, every approve/mark is followed by a
sync with the configured remote so approvals reach other clones without
a separate ``revctl sync``. Sync failures are logged and reported as
plugin warnings; the local write has already succeeded and a later
sync will carry it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from revctl.infrastructure.repository import ReviewRepository

hookimpl = pluggy.HookimplMarker("revctl")

logger = logging.getLogger(__name__)


class AutoPushPlugin:
    """Sync annotation namespaces after local writes."""

    def __init__(self, repo: ReviewRepository) -> None:
        self._repo = repo

    @property
    def _enabled(self) -> bool:
        return self._repo.settings.sync.auto_push

    @hookimpl
    def post_approve(
        self,
        reviewer: str,
        scrutiny_levels: dict[str, int],
        content_ids: dict[str, str],
    ) -> None:
        """Push fresh approvals."""
        self._push()

    @hookimpl
    def post_mark(self, reviewer: str, status: str, commits: list[str]) -> None:
        """Push fresh review marks."""
        self._push()

    def _push(self) -> None:
        if not self._enabled:
            return
        from revctl.services.sync import SyncService

        result = SyncService(self._repo).sync(dispatch=False)
        if not result.ok:
            msg = result.error.message if result.error else "unknown error"
            raise RuntimeError(f"auto-push failed: {msg}")
        logger.debug("auto-push complete: %s", result.data)
