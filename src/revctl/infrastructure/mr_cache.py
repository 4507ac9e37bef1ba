"""On-disk cache of merge requests and their version history.

One JSON document per merge request, named by its project-internal id,
kept under the repository's git directory so it never shows up in the
work tree.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from revctl.domain.merge_requests import MergeRequest

logger = logging.getLogger(__name__)


class MergeRequestCache:
    """JSON-file store keyed by merge-request iid."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, iid: int) -> Path:
        return self.directory / f"{iid}.json"

    def load(self, iid: int) -> MergeRequest | None:
        path = self._path(iid)
        if not path.is_file():
            return None
        try:
            return MergeRequest.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError:
            logger.warning("Ignoring corrupt merge request cache entry %s", path)
            return None

    def save(self, mr: MergeRequest) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(mr.iid).write_text(mr.model_dump_json(indent=2), encoding="utf-8")

    def delete(self, iid: int) -> None:
        self._path(iid).unlink(missing_ok=True)

    def iids(self) -> list[int]:
        if not self.directory.is_dir():
            return []
        return sorted(int(p.stem) for p in self.directory.glob("*.json") if p.stem.isdigit())

    def all(self) -> list[MergeRequest]:
        return [mr for iid in self.iids() if (mr := self.load(iid)) is not None]
