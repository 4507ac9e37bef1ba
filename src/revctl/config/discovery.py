"""Locating and reading ``revctl.toml``.

The file normally sits at the top of the work tree next to the rule
file. Lookup order: ``--config`` (handled by the caller), then
``REVCTL_CONFIG``, then a walk up from the working directory that stops
at the enclosing repository's top level, so a checkout nested inside
another project never picks up the outer project's review policy.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from revctl.config.models import RevConfig

CONFIG_FILENAME = "revctl.toml"
CONFIG_ENV_VAR = "REVCTL_CONFIG"


def _is_repo_top(directory: Path) -> bool:
    # ``.git`` is a directory in a normal clone and a file in worktrees.
    return (directory / ".git").exists()


def find_config(start: Path | None = None) -> Path | None:
    """Return the ``revctl.toml`` in effect for *start* (default: cwd), or None.

    A set ``REVCTL_CONFIG`` wins outright, even when it names a missing
    file (then there is no config at all).
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if _is_repo_top(candidate_dir):
            break
    return None


def load_config(path: Path | None = None, cwd: Path | None = None) -> RevConfig:
    """Validate the TOML sections into a :class:`RevConfig`.

    Without *path*, the file is discovered from *cwd*. No file means all
    defaults: a repository needs no configuration to be reviewed.

    Raises:
        tomllib.TOMLDecodeError: if the file is not valid TOML.
        pydantic.ValidationError: if a section holds invalid values.
    """
    path = path or find_config(cwd)
    if path is None:
        return RevConfig()
    return RevConfig.model_validate(tomllib.loads(path.read_text(encoding="utf-8")))
