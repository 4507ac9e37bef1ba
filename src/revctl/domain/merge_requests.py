"""Merge-request metadata and version history.

A merge request is a sequence of versions, one per push, each a
``(base, head)`` pair. Only those pairs ever reach policy evaluation.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, Field


class MergeRequestState(StrEnum):
    OPENED = "opened"
    CLOSED = "closed"
    REOPENED = "reopened"
    MERGED = "merged"
    LOCKED = "locked"


class VersionInfo(BaseModel):
    """One pushed version of a merge request (numbered from 1)."""

    model_config = {"frozen": True}

    version: int = Field(ge=1)
    base: str
    head: str

    @property
    def label(self) -> str:
        return f"v{self.version}"

    def __str__(self) -> str:
        return f"{self.label}: {self.base}..{self.head}"


class MergeRequest(BaseModel):
    """Cached merge-request metadata."""

    model_config = {"frozen": True}

    id: int
    iid: int
    title: str
    author: str
    author_name: str = ""
    description: str | None = None
    draft: bool = False
    state: MergeRequestState = MergeRequestState.OPENED
    created_at: str | None = None
    updated_at: str | None = None
    source_branch: str = ""
    target_branch: str = ""
    sha: str | None = None
    base_sha: str | None = None
    versions: tuple[VersionInfo, ...] = ()

    @property
    def latest(self) -> VersionInfo | None:
        return self.versions[-1] if self.versions else None

    def version(self, number: int) -> VersionInfo | None:
        for info in self.versions:
            if info.version == number:
                return info
        return None


def number_versions(
    existing: Iterable[VersionInfo],
    pairs: Iterable[tuple[str, str]],
) -> list[VersionInfo]:
    """Assign version numbers to chronological ``(base, head)`` pairs.

    Pairs already known keep their number; new ones continue after the
    highest existing number. Returns the full, ordered history.
    """
    history = {info.version: info for info in existing}
    known = {(info.base, info.head): info.version for info in history.values()}
    next_number = max(history, default=0) + 1
    for base, head in pairs:
        if (base, head) in known:
            continue
        info = VersionInfo(version=next_number, base=base, head=head)
        history[next_number] = info
        known[(base, head)] = next_number
        next_number += 1
    return [history[n] for n in sorted(history)]
