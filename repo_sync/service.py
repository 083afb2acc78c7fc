from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from .config import Options, load_options
from .controller import SyncController
from .git_client import GitClient
from .models import ControllerState
from .notifier import Notifier
from .prompts import PromptBroker
from .tracker import RepositoryTracker

_LOGGER = logging.getLogger(__name__)


class RepoSyncService:
    def __init__(
        self,
        options: Options | None = None,
        *,
        client: GitClient | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.options = options or load_options()
        self.git = client or GitClient(verify_ssl=self.options.verify_ssl)
        self.tracker = RepositoryTracker(
            self.git, self.options.repositories, self.options.selected_repository
        )
        self.prompts = PromptBroker(timeout=self.options.prompt_timeout)
        self.notifier = notifier or Notifier(self.options)
        self.controller = SyncController(self.git, self.tracker, self.prompts, self.notifier)
        self.controller.on_did_change.subscribe(self._on_busy_changed)
        self._tasks: set[asyncio.Task[None]] = set()
        self._stop = asyncio.Event()

    @property
    def state(self) -> ControllerState:
        return ControllerState(
            busy=self.controller.busy,
            can_sync=self.controller.can_sync(),
            can_publish=self.controller.can_publish(),
            repository=self.tracker.selected_repository,
            status=self.tracker.selected_repository_status,
            last_error=self.controller.last_error,
        )

    async def run(self) -> None:
        while not self._stop.is_set():
            await self.tracker.refresh()
            try:
                await asyncio.wait_for(
                    self._stop.wait(), timeout=self.options.status_poll_interval
                )
            except asyncio.TimeoutError:
                continue

    def start_sync(self) -> bool:
        if not self.controller.can_sync():
            return False
        self._spawn(self.controller.sync, "sync")
        return True

    def start_publish(self) -> bool:
        if not self.controller.can_publish():
            return False
        self._spawn(self.controller.publish, "publish")
        return True

    def _spawn(self, workflow: Callable[[], Awaitable[None]], name: str) -> None:
        task = asyncio.create_task(self._run_workflow(workflow, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_workflow(self, workflow: Callable[[], Awaitable[None]], name: str) -> None:
        try:
            await workflow()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("%s workflow failed", name.capitalize())
        finally:
            await self.tracker.refresh()

    def _on_busy_changed(self) -> None:
        _LOGGER.info("Sync %s", "started" if self.controller.busy else "finished")

    def public_config(self) -> dict[str, Any]:
        data = self.options.model_dump()
        data["mqtt"].pop("password", None)
        if data.get("webhook_url"):
            data["webhook_url"] = "***redacted***"
        return data

    async def shutdown(self) -> None:
        self._stop.set()
        self.prompts.cancel_all()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.notifier.aclose()
