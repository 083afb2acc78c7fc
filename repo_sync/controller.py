from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from .events import Emitter
from .git_client import CommandError, GitClient
from .models import Repository, SyncMethod
from .notifier import Notifier
from .prompts import PickOption, PromptProvider, Selected
from .tracker import RepositoryTracker

_LOGGER = logging.getLogger(__name__)

SYNC_METHOD_OPTIONS: list[PickOption[SyncMethod]] = [
    PickOption("Pull and push commits", SyncMethod.MERGE),
    PickOption("Fetch, rebase and push commits", SyncMethod.REBASE),
]


def build_pull_args(rebase: bool = False) -> list[str]:
    args = ["pull"]
    if rebase:
        args.append("-r")
    return args


def build_push_args(
    remote: str | None = None,
    branch: str | None = None,
    set_upstream: bool = False,
) -> list[str]:
    args = ["push"]
    if set_upstream:
        args.append("-u")
    if remote and branch:
        args.extend([remote, branch])
    return args


def sync_confirmation_message(method: SyncMethod, upstream_branch: str) -> str:
    if method is SyncMethod.REBASE:
        return f"This action will fetch, rebase and push commits from and to '{upstream_branch}'."
    return f"This action will pull and push commits from and to '{upstream_branch}'."


class SyncController:
    """Drives the sync and publish workflows for the selected repository.

    Only the sync workflow marks the controller busy. `on_did_change` fires
    on every busy transition so observers can enable or disable their
    triggers.
    """

    def __init__(
        self,
        client: GitClient,
        tracker: RepositoryTracker,
        prompts: PromptProvider,
        notifier: Notifier,
    ) -> None:
        self._client = client
        self._tracker = tracker
        self._prompts = prompts
        self._notifier = notifier
        self._busy = False
        self._on_did_change = Emitter()
        self.last_error: str | None = None

    @property
    def on_did_change(self) -> Emitter:
        return self._on_did_change

    @property
    def busy(self) -> bool:
        return self._busy

    def can_sync(self) -> bool:
        if self._busy:
            return False
        status = self._tracker.selected_repository_status
        return status is not None and bool(status.branch) and bool(status.upstream_branch)

    def can_publish(self) -> bool:
        if self._busy:
            return False
        status = self._tracker.selected_repository_status
        return status is not None and bool(status.branch) and not status.upstream_branch

    async def sync(self) -> None:
        repository = self._tracker.selected_repository
        status = self._tracker.selected_repository_status
        if not self.can_sync() or repository is None or status is None:
            _LOGGER.debug("Sync requested while not eligible, ignoring")
            return
        upstream_branch = status.upstream_branch or ""

        choice = await self._prompts.pick_one("Pick a sync method:", SYNC_METHOD_OPTIONS)
        if not isinstance(choice, Selected):
            _LOGGER.info("Sync cancelled at method choice")
            return
        method = choice.value
        confirmed = await self._prompts.confirm(
            "Sync changes", sync_confirmation_message(method, upstream_branch)
        )
        if not confirmed:
            _LOGGER.info("Sync of %s declined", upstream_branch)
            return
        # another sync may have started while the prompts were open
        if self._busy:
            _LOGGER.info("Sync of %s skipped, another sync is running", upstream_branch)
            return

        with self._busy_scope():
            _LOGGER.info(
                "Syncing %s with %s (%s)", repository.local_path, upstream_branch, method.value
            )
            await self._run_command(repository, build_pull_args(method is SyncMethod.REBASE))
            if await self._should_push(repository):
                await self._run_command(repository, build_push_args())

    async def publish(self) -> None:
        repository = self._tracker.selected_repository
        status = self._tracker.selected_repository_status
        branch = status.branch if status else None
        if not self.can_publish() or repository is None or not branch:
            _LOGGER.debug("Publish requested while not eligible, ignoring")
            return

        remote = await self._pick_remote(repository, branch)
        if remote is None:
            return
        confirmed = await self._prompts.confirm(
            "Publish changes",
            f"This action will push commits to '{remote}/{branch}' "
            "and track it as an upstream branch.",
        )
        if not confirmed:
            _LOGGER.info("Publish of %s/%s declined", remote, branch)
            return
        _LOGGER.info("Publishing %s to %s", branch, remote)
        await self._run_command(
            repository, build_push_args(remote, branch, set_upstream=True)
        )

    async def _pick_remote(self, repository: Repository, branch: str) -> str | None:
        try:
            remotes = await self._client.list_remotes(repository)
        except CommandError as exc:
            await self._report(exc)
            return None
        if not remotes:
            await self._notifier.warn("Your repository has no remotes configured to publish to.")
            return None
        if len(remotes) == 1:
            return remotes[0]
        choice = await self._prompts.pick_one(
            f"Pick a remote to publish the branch {branch} to:",
            [PickOption.of(remote) for remote in remotes],
        )
        if not isinstance(choice, Selected):
            _LOGGER.info("Publish of %s cancelled at remote choice", branch)
            return None
        return choice.value

    async def _should_push(self, repository: Repository) -> bool:
        try:
            status = await self._client.get_status(repository)
        except CommandError as exc:
            _LOGGER.warning("Status unavailable after pull, pushing anyway: %s", exc)
            return True
        if status.ahead_behind and status.ahead_behind.ahead > 0:
            return True
        # TODO: confirm whether a push with nothing ahead should be skipped
        _LOGGER.debug("No local commits ahead of %s, pushing anyway", status.upstream_branch)
        return True

    async def _run_command(self, repository: Repository, argv: Sequence[str]) -> None:
        try:
            await self._client.execute(repository, argv)
        except CommandError as exc:
            await self._report(exc)

    async def _report(self, exc: CommandError) -> None:
        if exc.message:
            message = exc.message
        else:
            _LOGGER.error("git %s failed without a message: %r", " ".join(exc.argv), exc)
            message = f"Git command failed: git {' '.join(exc.argv)}"
        self.last_error = message
        await self._notifier.error(message)

    @contextmanager
    def _busy_scope(self) -> Iterator[None]:
        self._set_busy(True)
        try:
            yield
        finally:
            self._set_busy(False)

    def _set_busy(self, busy: bool) -> None:
        if self._busy == busy:
            return
        self._busy = busy
        self._on_did_change.fire()
