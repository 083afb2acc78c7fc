"""Shared fakes for the git client, tracker, prompts and notifier."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

import pytest

from repo_sync.config import Options
from repo_sync.controller import SyncController
from repo_sync.git_client import CommandError
from repo_sync.models import AheadBehind, Notification, Repository, RepositoryStatus
from repo_sync.prompts import Cancelled, PickOption, Selected

REPO_PATH = "/work/project"

TRACKED = RepositoryStatus(
    branch="main",
    upstream_branch="origin/main",
    ahead_behind=AheadBehind(ahead=0, behind=0),
)
UNTRACKED = RepositoryStatus(branch="feature-x")


class FakeGitClient:
    def __init__(
        self,
        remotes: Sequence[str] = (),
        status: RepositoryStatus | None = None,
    ) -> None:
        self.remotes = list(remotes)
        self.status = status or TRACKED
        self.calls: list[list[str]] = []
        self.failures: dict[str, BaseException] = {}
        self.remotes_error: CommandError | None = None
        self.status_error: CommandError | None = None
        self.gate: asyncio.Event | None = None
        self.status_calls = 0

    async def list_remotes(self, repository: Repository) -> list[str]:
        if self.remotes_error:
            raise self.remotes_error
        return list(self.remotes)

    async def get_status(self, repository: Repository) -> RepositoryStatus:
        self.status_calls += 1
        if self.status_error:
            raise self.status_error
        return self.status

    async def execute(self, repository: Repository, argv: Sequence[str]) -> str:
        self.calls.append(list(argv))
        if self.gate is not None:
            await self.gate.wait()
        failure = self.failures.get(argv[0])
        if failure is not None:
            raise failure
        return ""


class FakeTracker:
    def __init__(
        self,
        repository: Repository | None = Repository(local_path=REPO_PATH),
        status: RepositoryStatus | None = TRACKED,
    ) -> None:
        self.selected_repository = repository
        self.selected_repository_status = status

    async def refresh(self) -> RepositoryStatus | None:
        return self.selected_repository_status


class ScriptedPrompts:
    """Answers picks by index (None cancels) and confirmations in order."""

    def __init__(
        self,
        picks: Sequence[int | None] = (),
        confirms: Sequence[bool] = (),
    ) -> None:
        self.picks = list(picks)
        self.confirms = list(confirms)
        self.pick_calls: list[tuple[str, list[str]]] = []
        self.confirm_calls: list[tuple[str, str]] = []

    async def pick_one(
        self, prompt: str, options: Sequence[PickOption[Any]]
    ) -> Selected[Any] | Cancelled:
        self.pick_calls.append((prompt, [option.label for option in options]))
        index = self.picks.pop(0)
        if index is None:
            return Cancelled()
        return Selected(options[index].value)

    async def confirm(self, title: str, message: str) -> bool:
        self.confirm_calls.append((title, message))
        return self.confirms.pop(0)

    @property
    def prompt_count(self) -> int:
        return len(self.pick_calls) + len(self.confirm_calls)


class RecordingNotifier:
    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[str] = []

    async def warn(self, message: str) -> None:
        self.warnings.append(message)

    async def error(self, message: str) -> None:
        self.errors.append(message)

    def recent(self) -> list[Notification]:
        now = datetime.now(timezone.utc)
        return [
            *(Notification(level="warning", message=m, created_at=now) for m in self.warnings),
            *(Notification(level="error", message=m, created_at=now) for m in self.errors),
        ]

    async def aclose(self) -> None:
        pass


async def wait_until(predicate: Callable[[], Any], timeout: float = 2.0) -> Any:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if result:
            return result
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def git_client() -> FakeGitClient:
    return FakeGitClient(remotes=["origin"])


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_controller(
    git_client: FakeGitClient, notifier: RecordingNotifier
) -> Callable[..., SyncController]:
    def factory(
        prompts: ScriptedPrompts | Any,
        tracker: FakeTracker | None = None,
    ) -> SyncController:
        return SyncController(git_client, tracker or FakeTracker(), prompts, notifier)

    return factory


@pytest.fixture
def options() -> Options:
    return Options(repositories=[REPO_PATH, "/work/other"])
