from __future__ import annotations

import asyncio
import logging
import os
import signal

import uvicorn

from repo_sync.api import create_app
from repo_sync.config import Options, load_options
from repo_sync.service import RepoSyncService

__VERSION__ = "0.1.0"

_LOGGER = logging.getLogger("repo_sync")

# git and uvicorn have no trace level, it only widens our own logging
LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(options: Options) -> None:
    logging.basicConfig(
        level=LOG_LEVELS.get(options.log_level.lower(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    if options.log_level.lower() != "trace":
        logging.getLogger("git").setLevel(logging.WARNING)


def build_server(service: RepoSyncService) -> uvicorn.Server | None:
    port = service.options.http_api_port
    if port <= 0:
        _LOGGER.info("HTTP API disabled, workflows can only be driven in-process")
        return None
    config = uvicorn.Config(create_app(service), host="0.0.0.0", port=port, log_level="info")
    return uvicorn.Server(config)


async def serve(service: RepoSyncService) -> None:
    server = build_server(service)
    stopped = asyncio.Event()

    def request_stop() -> None:
        if stopped.is_set():
            return
        _LOGGER.info("Stopping repo sync service")
        if server:
            server.should_exit = True
        stopped.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, request_stop)

    async with asyncio.TaskGroup() as tg:
        tg.create_task(service.run())
        if server:
            tg.create_task(server.serve())
        await stopped.wait()
        await service.shutdown()


async def main() -> None:
    options = load_options()
    configure_logging(options)
    service = RepoSyncService(options)
    selected = service.tracker.selected_repository
    _LOGGER.info(
        "Repo sync %s (build %s) watching %d repositories, selected %s",
        __VERSION__,
        os.getenv("REPO_SYNC_BUILD_VERSION", "dev"),
        len(options.repositories),
        selected.local_path if selected else "none",
    )
    await serve(service)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
