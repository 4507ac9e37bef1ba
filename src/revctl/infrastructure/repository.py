"""ReviewRepository: the single dependency injected into every service.

Owns the git repository handle, both annotation namespaces (approvals
keyed by content object, review marks keyed by commit), the merge-request
cache, and the plugin manager. Nothing here caches core state across
commands: every read goes back to the notes refs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from revctl.infrastructure.git import GitRepo
from revctl.infrastructure.mr_cache import MergeRequestCache
from revctl.infrastructure.notes import NotesNamespace

if TYPE_CHECKING:
    from revctl.config.settings import RevSettings
    from revctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

STATE_DIR = "revctl"


class ReviewRepository:
    """Review state of one git repository.

    Raises:
        GitError: at construction if ``settings.repo_root`` is not inside
            a git work tree.
    """

    def __init__(self, settings: RevSettings, *, git: GitRepo | None = None) -> None:
        self.settings = settings
        self.git = git or GitRepo.discover(settings.repo_root)
        retries = settings.sync.max_retries
        self.approvals = NotesNamespace(self.git, settings.notes.approvals_ref, max_retries=retries)
        self.reviews = NotesNamespace(self.git, settings.notes.reviews_ref, max_retries=retries)
        self._mr_cache: MergeRequestCache | None = None
        self._plugins: PluginManager | None = None

    @property
    def root(self) -> Path:
        return self.git.root

    @property
    def namespaces(self) -> tuple[NotesNamespace, NotesNamespace]:
        return (self.approvals, self.reviews)

    @property
    def mr_cache(self) -> MergeRequestCache:
        if self._mr_cache is None:
            self._mr_cache = MergeRequestCache(self.git.git_dir / STATE_DIR / "merge_requests")
        return self._mr_cache

    def identity(self) -> str | None:
        """Reviewer identity: ``[review] identity`` or git's ``user.name``."""
        return self.settings.review.identity or self.git.config_get("user.name")

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    @property
    def plugins(self) -> PluginManager | None:
        return self._plugins

    def init_plugins(self) -> PluginManager:
        """Load entry-point plugins and register the built-ins."""
        from revctl.plugins.builtins.autopush import AutoPushPlugin
        from revctl.plugins.manager import PluginManager

        if self._plugins is None:
            pm = PluginManager()
            pm.discover_and_load()
            pm.register_plugin(AutoPushPlugin(self), name="autopush")
            self._plugins = pm
        return self._plugins
