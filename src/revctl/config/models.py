"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, revctl.toml only contains
overrides. A repository needs no config file at all to work.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- revctl.toml sections ---


class RulesConfig(BaseModel):
    """[rules] section."""

    model_config = {"frozen": True}

    path: str = "MAINTAINERS"
    # None reads the working tree; otherwise any revision git understands.
    rev: str | None = None


class NotesConfig(BaseModel):
    """[notes] section."""

    model_config = {"frozen": True}

    approvals_ref: str = "refs/notes/revctl/approvals"
    reviews_ref: str = "refs/notes/revctl/reviews"


class RangeConfig(BaseModel):
    """[range] section."""

    model_config = {"frozen": True}

    default_base: str = "origin/main"


class ReviewConfig(BaseModel):
    """[review] section."""

    model_config = {"frozen": True}

    # Falls back to git's user.name when unset.
    identity: str | None = None


class SyncConfig(BaseModel):
    """[sync] section."""

    model_config = {"frozen": True}

    remote: str = "origin"
    push: bool = True
    max_retries: int = Field(default=5, ge=1)
    timeout: float = Field(default=60.0, gt=0)
    auto_push: bool = False


class TrackerConfig(BaseModel):
    """[tracker] section."""

    model_config = {"frozen": True}

    url: str | None = None
    token: str | None = None
    project_id: int | None = None
    username: str | None = None
    timeout: float = Field(default=30.0, gt=0)

    @property
    def configured(self) -> bool:
        return bool(self.url and self.project_id is not None)


class RevConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    rules: RulesConfig = Field(default_factory=RulesConfig)
    notes: NotesConfig = Field(default_factory=NotesConfig)
    range: RangeConfig = Field(default_factory=RangeConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
