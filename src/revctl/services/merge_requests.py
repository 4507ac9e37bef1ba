"""MergeRequestService: mirror tracker merge requests and evaluate their versions.

Fetching is the only operation that talks to the tracker; listing and
status work from the local cache, so they keep working offline.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from revctl.domain.merge_requests import MergeRequest, MergeRequestState, number_versions
from revctl.infrastructure.git import GitError
from revctl.infrastructure.tracker import GitLabClient, TrackerError, TrackerTimeoutError
from revctl.services.base import BaseService
from revctl.services.result import ServiceResult
from revctl.services.review import ReviewService
from revctl.services.status import StatusService
from revctl.services.telemetry import traced

if TYPE_CHECKING:
    from revctl.infrastructure.repository import ReviewRepository

logger = logging.getLogger(__name__)

PIN_PREFIX = "refs/revctl/mr"
_OPEN_STATES = (MergeRequestState.OPENED, MergeRequestState.REOPENED)


def pin_ref(iid: int, version: int) -> str:
    return f"{PIN_PREFIX}/{iid}/v{version}"


class MergeRequestService(BaseService):
    """Fetch, list, and evaluate cached merge requests."""

    def __init__(self, repo: ReviewRepository, client: GitLabClient | None = None) -> None:
        super().__init__(repo)
        self._client = client

    def _tracker(self) -> GitLabClient | None:
        if self._client is None:
            cfg = self.settings.tracker
            if not cfg.configured:
                return None
            assert cfg.url is not None
            self._client = GitLabClient(cfg.url, cfg.token, timeout=cfg.timeout)
        return self._client

    # ------------------------------------------------------------------
    # fetch
    # ------------------------------------------------------------------

    @traced
    def fetch(self) -> ServiceResult:
        """Refresh the cache from the tracker and pin new version heads."""
        op = "mr_fetch"
        client = self._tracker()
        if client is None:
            return ServiceResult.failure(
                op, "NOT_CONFIGURED", "No tracker configured: set [tracker] url and project_id"
            )
        project = self.settings.tracker.project_id
        assert project is not None
        cache = self._repo.mr_cache
        warnings: list[str] = []

        try:
            open_mrs = client.list_merge_requests(project)
            updated: list[dict[str, Any]] = []
            for mr in open_mrs:
                updated.append(self._refresh(client, project, mr, warnings))

            open_iids = {mr.iid for mr in open_mrs}
            dropped: list[int] = []
            for iid in cache.iids():
                if iid in open_iids:
                    continue
                try:
                    current = client.get_merge_request(project, iid)
                except TrackerTimeoutError:
                    raise
                except TrackerError as exc:
                    if exc.status != 404:
                        raise
                    current = None
                if current is None or current.state not in _OPEN_STATES:
                    cache.delete(iid)
                    dropped.append(iid)
        except TrackerTimeoutError as exc:
            return ServiceResult.failure(op, "TIMEOUT", str(exc), warnings=warnings)
        except TrackerError as exc:
            return ServiceResult.failure(
                op, "TRACKER_ERROR", str(exc), detail={"status": exc.status}, warnings=warnings
            )
        except KeyboardInterrupt:
            return ServiceResult.failure(op, "CANCELLED", "Merge request fetch cancelled")

        return ServiceResult(
            ok=True,
            op=op,
            data={"count": len(updated), "items": updated, "dropped": dropped},
            warnings=warnings,
        )

    def _refresh(
        self,
        client: GitLabClient,
        project: int,
        mr: MergeRequest,
        warnings: list[str],
    ) -> dict[str, Any]:
        previous = self._repo.mr_cache.load(mr.iid)
        known = previous.versions if previous else ()
        try:
            pairs = list(reversed(client.list_versions(project, mr.iid)))
        except TrackerTimeoutError:
            raise
        except TrackerError as exc:
            logger.warning("No version history for !%d: %s", mr.iid, exc)
            warnings.append(f"!{mr.iid}: version history unavailable, recording current head")
            pairs = [(mr.base_sha, mr.sha)] if mr.base_sha and mr.sha else []

        versions = number_versions(known, pairs)
        fresh = mr.model_copy(update={"versions": tuple(versions)})
        self._repo.mr_cache.save(fresh)

        new_versions = versions[len(known) :]
        for info in new_versions:
            self._pin(mr.iid, info.version, info.head, warnings)
        return {
            "iid": mr.iid,
            "title": mr.title,
            "versions": len(versions),
            "new_versions": [info.version for info in new_versions],
        }

    def _pin(self, iid: int, version: int, head: str, warnings: list[str]) -> None:
        git = self._repo.git
        if not git.object_exists(head):
            warnings.append(f"!{iid} v{version}: head {head[:10]} not present locally; fetch the branch")
            return
        ref = pin_ref(iid, version)
        if git.rev_parse(ref) is not None:
            return
        try:
            git.update_ref(ref, head, None)
        except GitError as exc:
            warnings.append(f"could not pin {ref}: {exc.stderr}")

    # ------------------------------------------------------------------
    # list
    # ------------------------------------------------------------------

    @traced
    def list_cached(self, *, show_all: bool = False) -> ServiceResult:
        """Cached merge requests with unreviewed commit counts per version."""
        op = "mr_list"
        username = self.settings.tracker.username
        reviews = ReviewService(self._repo)
        git = self._repo.git
        try:
            snapshot = self._repo.reviews.snapshot()
        except GitError as exc:
            return ServiceResult.failure(op, "GIT_ERROR", str(exc))

        items: list[dict[str, Any]] = []
        hidden = 0
        for mr in self._repo.mr_cache.all():
            if not show_all and (mr.draft or (username and mr.author == username)):
                hidden += 1
                continue
            versions = []
            for info in mr.versions:
                unreviewed: int | None = None
                if git.object_exists(info.base) and git.object_exists(info.head):
                    try:
                        unreviewed = len(reviews.unreviewed_commits(info.base, info.head, snapshot=snapshot))
                    except GitError:
                        unreviewed = None
                versions.append(
                    {"version": info.version, "base": info.base, "head": info.head, "unreviewed": unreviewed}
                )
            items.append(
                {
                    "iid": mr.iid,
                    "title": mr.title,
                    "author": mr.author,
                    "draft": mr.draft,
                    "state": str(mr.state),
                    "source_branch": mr.source_branch,
                    "target_branch": mr.target_branch,
                    "versions": versions,
                }
            )
        return ServiceResult(ok=True, op=op, data={"count": len(items), "hidden": hidden, "items": items})

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------

    @traced
    def status(self, iid: int, *, version: int | None = None) -> ServiceResult:
        """Evaluate review requirements on one version (default: latest)."""
        op = "mr_status"
        mr = self._repo.mr_cache.load(iid)
        if mr is None:
            return ServiceResult.failure(
                op, "NOT_FOUND", f"Merge request !{iid} is not cached; run 'revctl mr fetch'"
            )
        info = mr.version(version) if version is not None else mr.latest
        if info is None:
            label = f"v{version}" if version is not None else "any version"
            return ServiceResult.failure(op, "NOT_FOUND", f"Merge request !{iid} has no {label}")

        result = StatusService(self._repo).status_for(info.base, info.head)
        if not result.ok:
            return result.model_copy(update={"op": op})
        data = {**result.data, "iid": mr.iid, "title": mr.title, "version": info.version}
        return result.model_copy(update={"op": op, "data": data})
