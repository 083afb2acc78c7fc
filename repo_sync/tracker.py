from __future__ import annotations

import logging

from .git_client import CommandError, GitClient
from .models import Repository, RepositoryStatus

_LOGGER = logging.getLogger(__name__)


class UnknownRepositoryError(ValueError):
    """Raised when selecting a repository that is not configured."""


class RepositoryTracker:
    def __init__(
        self,
        client: GitClient,
        repositories: list[str],
        selected: str | None = None,
    ) -> None:
        self._client = client
        self._repositories = [Repository(local_path=path) for path in repositories]
        self._selected: Repository | None = None
        self._status: RepositoryStatus | None = None
        if self._repositories:
            self._selected = self._find(selected) if selected else self._repositories[0]

    @property
    def repositories(self) -> list[Repository]:
        return list(self._repositories)

    @property
    def selected_repository(self) -> Repository | None:
        return self._selected

    @property
    def selected_repository_status(self) -> RepositoryStatus | None:
        return self._status

    async def select(self, path: str) -> Repository:
        repository = self._find(path)
        if repository != self._selected:
            _LOGGER.info("Selected repository %s", repository.local_path)
            self._selected = repository
            self._status = None
        await self.refresh()
        return repository

    async def refresh(self) -> RepositoryStatus | None:
        repository = self._selected
        if repository is None:
            return None
        try:
            status = await self._client.get_status(repository)
        except CommandError as exc:
            _LOGGER.warning("Status refresh failed for %s: %s", repository.local_path, exc)
            status = None
        # the selection may have changed while the status was being read
        if repository == self._selected:
            self._status = status
        return status

    def _find(self, path: str) -> Repository:
        for repository in self._repositories:
            if repository.local_path == path:
                return repository
        raise UnknownRepositoryError(f"Repository {path} is not configured")
