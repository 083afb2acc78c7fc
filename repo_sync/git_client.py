from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence, TypeVar

import git

from .models import AheadBehind, Repository, RepositoryStatus

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CommandError(RuntimeError):
    """Raised when a git operation fails."""

    def __init__(self, argv: Sequence[str], message: str | None = None) -> None:
        self.argv = list(argv)
        self.message = message or None
        super().__init__(message or f"git {' '.join(self.argv)} failed")


class GitClient:
    def __init__(self, verify_ssl: bool = True) -> None:
        # git must fail instead of waiting on a credential prompt nobody can answer
        self._env = {"GIT_TERMINAL_PROMPT": "0", "GCM_INTERACTIVE": "never"}
        if not verify_ssl:
            self._env["GIT_SSL_NO_VERIFY"] = "true"

    async def list_remotes(self, repository: Repository) -> list[str]:
        return await self._run(repository, ["remote"], self._list_remotes_sync)

    async def get_status(self, repository: Repository) -> RepositoryStatus:
        return await self._run(repository, ["status"], self._status_sync)

    async def execute(self, repository: Repository, argv: Sequence[str]) -> str:
        args = list(argv)
        _LOGGER.info("Running git %s in %s", " ".join(args), repository.local_path)
        output = await self._run(
            repository, args, lambda repo: repo.git.execute(["git", *args], env=self._env)
        )
        _LOGGER.debug("git %s finished: %s", args[0] if args else "", output)
        return output

    async def _run(
        self,
        repository: Repository,
        argv: Sequence[str],
        operation: Callable[[git.Repo], T],
    ) -> T:
        return await asyncio.to_thread(self._run_sync, repository, argv, operation)

    @staticmethod
    def _run_sync(
        repository: Repository,
        argv: Sequence[str],
        operation: Callable[[git.Repo], T],
    ) -> T:
        try:
            with git.Repo(repository.local_path) as repo:
                return operation(repo)
        except git.GitCommandError as exc:
            raise CommandError(argv, _command_message(exc)) from exc
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as exc:
            raise CommandError(
                argv, f"{repository.local_path} is not a Git repository"
            ) from exc

    @staticmethod
    def _list_remotes_sync(repo: git.Repo) -> list[str]:
        return [remote.name for remote in repo.remotes]

    @staticmethod
    def _status_sync(repo: git.Repo) -> RepositoryStatus:
        if repo.head.is_detached:
            return RepositoryStatus()
        head = repo.active_branch
        tracking = head.tracking_branch()
        if tracking is None:
            return RepositoryStatus(branch=head.name)
        return RepositoryStatus(
            branch=head.name,
            upstream_branch=tracking.name,
            ahead_behind=_ahead_behind(repo, tracking.name),
        )


def _ahead_behind(repo: git.Repo, upstream: str) -> AheadBehind | None:
    try:
        counts = repo.git.rev_list("--left-right", "--count", f"{upstream}...HEAD")
    except git.GitCommandError as exc:
        _LOGGER.debug("Cannot compare HEAD with %s: %s", upstream, exc)
        return None
    behind, ahead = (int(value) for value in counts.split())
    return AheadBehind(ahead=ahead, behind=behind)


def _command_message(exc: git.GitCommandError) -> str | None:
    stderr = _unwrap(exc.stderr, "stderr")
    stdout = _unwrap(exc.stdout, "stdout")
    # merge conflicts are reported on stdout, stderr only has the fetch summary
    parts = [stdout, stderr] if "CONFLICT" in stdout else [stderr, stdout]
    text = "\n".join(part for part in parts if part)
    return text or None


def _unwrap(value: object, stream: str) -> str:
    text = str(value or "").strip()
    prefix = f"{stream}: '"
    if text.startswith(prefix) and text.endswith("'"):
        text = text[len(prefix):-1].strip()
    return text
