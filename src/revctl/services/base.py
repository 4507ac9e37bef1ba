"""BaseService: foundation for all revctl services.

Every service receives a :class:`ReviewRepository` at construction time.
The repository provides the git handle and both annotation namespaces.
Reads snapshot a namespace once per operation; writes go through the
namespace's compare-and-swap update.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from revctl.domain.approvals import valid_reviewer
from revctl.services.result import ServiceResult

if TYPE_CHECKING:
    from revctl.config.settings import RevSettings
    from revctl.infrastructure.repository import ReviewRepository

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class ApprovalService(BaseService):
            def approve(self, target: str, ...) -> ServiceResult:
                self._repo.approvals.update(...)
    """

    def __init__(self, repo: ReviewRepository) -> None:
        self._repo = repo

    @property
    def settings(self) -> RevSettings:
        return self._repo.settings

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event. No-op if plugins are not initialized.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        plugins = self._repo.plugins
        if plugins is None:
            return
        try:
            warnings.extend(plugins.dispatch(hook_name, payload))
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")

    def _reviewer_failure(self, op: str, reviewer: str) -> ServiceResult | None:
        """Failure result if *reviewer* cannot be recorded, else None."""
        if not reviewer:
            return ServiceResult.failure(
                op,
                "NO_IDENTITY",
                "No reviewer identity: set [review] identity or git user.name",
            )
        if not valid_reviewer(reviewer):
            return ServiceResult.failure(
                op,
                "INVALID_IDENTITY",
                f"Reviewer identity {reviewer!r} contains whitespace or a comma; "
                "set [review] identity to the name used in the rule file",
                detail={"reviewer": reviewer},
            )
        return None
