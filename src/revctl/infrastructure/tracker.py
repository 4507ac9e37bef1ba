"""GitLab-compatible merge-request tracker client (REST v4).

Only the handful of endpoints revctl needs: open merge requests, a single
merge request, its version history, and a branch head. Every request
carries the configured timeout; a timeout surfaces as
:class:`TrackerTimeoutError`, distinct from other failures. Nothing here
retries.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from revctl.domain.merge_requests import MergeRequest, MergeRequestState

logger = logging.getLogger(__name__)

PER_PAGE = 100


class TrackerError(RuntimeError):
    """The tracker request failed."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TrackerTimeoutError(TrackerError):
    """The tracker did not answer within the deadline."""


def merge_request_from_api(data: dict[str, Any]) -> MergeRequest:
    """Convert a REST merge-request object into the cached model."""
    author = data.get("author") or {}
    diff_refs = data.get("diff_refs") or {}
    state = data.get("state", MergeRequestState.OPENED)
    try:
        state = MergeRequestState(state)
    except ValueError:
        state = MergeRequestState.OPENED
    return MergeRequest(
        id=int(data["id"]),
        iid=int(data["iid"]),
        title=data.get("title", ""),
        author=author.get("username", ""),
        author_name=author.get("name", ""),
        description=data.get("description"),
        draft=bool(data.get("draft", data.get("work_in_progress", False))),
        state=state,
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
        source_branch=data.get("source_branch", ""),
        target_branch=data.get("target_branch", ""),
        sha=data.get("sha"),
        base_sha=diff_refs.get("base_sha"),
    )


class GitLabClient:
    """Minimal blocking client for a GitLab-compatible API."""

    def __init__(
        self,
        url: str,
        token: str | None,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if "://" not in url:
            url = f"https://{url}"
        self.api = f"{url.rstrip('/')}/api/v4"
        self.timeout = timeout
        self._session = session or requests.Session()
        if token:
            self._session.headers["PRIVATE-TOKEN"] = token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, path: str, params: dict[str, Any] | None = None) -> requests.Response:
        url = f"{self.api}/{path.lstrip('/')}"
        logger.debug("GET %s %s", url, params or {})
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            msg = f"GET {url} timed out after {self.timeout:g}s"
            raise TrackerTimeoutError(msg) from exc
        except requests.RequestException as exc:
            raise TrackerError(f"GET {url} failed: {exc}") from exc
        if resp.status_code >= 400:
            msg = f"GET {url} returned {resp.status_code}"
            raise TrackerError(msg, status=resp.status_code)
        return resp

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._request(path, params).json()

    def _paged(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        items: list[Any] = []
        page: str | None = "1"
        while page:
            resp = self._request(path, {**(params or {}), "per_page": PER_PAGE, "page": page})
            items.extend(resp.json())
            page = resp.headers.get("X-Next-Page") or None
        return items

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def list_merge_requests(self, project: int | str, *, state: str = "opened") -> list[MergeRequest]:
        data = self._paged(f"projects/{project}/merge_requests", {"state": state})
        return [merge_request_from_api(item) for item in data]

    def get_merge_request(self, project: int | str, iid: int) -> MergeRequest:
        return merge_request_from_api(self._get(f"projects/{project}/merge_requests/{iid}"))

    def list_versions(self, project: int | str, iid: int) -> list[tuple[str, str]]:
        """``(base, head)`` pairs, newest first (as the API returns them)."""
        data = self._get(f"projects/{project}/merge_requests/{iid}/versions")
        pairs: list[tuple[str, str]] = []
        for item in data:
            base = item.get("base_commit_sha")
            head = item.get("head_commit_sha")
            if not isinstance(base, str) or not isinstance(head, str):
                raise TrackerError(f"malformed version entry for !{iid}: {item!r}")
            pairs.append((base, head))
        return pairs

    def branch_head(self, project: int | str, branch: str) -> str:
        data = self._get(f"projects/{project}/repository/branches/{quote(branch, safe='')}")
        commit = data.get("commit") or {}
        head = commit.get("id")
        if not head:
            raise TrackerError(f"branch {branch!r} has no head commit")
        return str(head)
