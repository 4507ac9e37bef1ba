"""Commit ranges and the changed-path snapshot consumed by evaluation."""

from __future__ import annotations

from pydantic import BaseModel


class ChangedPath(BaseModel):
    """A path changed in a range, with the content id of its bytes at head."""

    model_config = {"frozen": True}

    path: str
    content_id: str


class Range(BaseModel):
    """Commits reachable from *head* but not from *base*."""

    model_config = {"frozen": True}

    base: str
    head: str
    changes: tuple[ChangedPath, ...] = ()

    @property
    def spec(self) -> str:
        return f"{self.base}..{self.head}"

    @property
    def paths(self) -> list[str]:
        return [change.path for change in self.changes]
