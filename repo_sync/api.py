from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, status

from .models import (
    ControllerState,
    Notification,
    PendingPrompt,
    PromptAnswer,
    SelectRepositoryRequest,
)
from .prompts import PromptAnswerError, PromptNotFoundError
from .service import RepoSyncService
from .tracker import UnknownRepositoryError


def create_app(service: RepoSyncService) -> FastAPI:
    app = FastAPI(title="Repo Sync", version="0.1.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/status", response_model=ControllerState)
    async def get_status() -> ControllerState:
        return service.state

    @app.post("/refresh", response_model=ControllerState)
    async def refresh() -> ControllerState:
        await service.tracker.refresh()
        return service.state

    @app.post("/repositories/select", response_model=ControllerState)
    async def select_repository(body: SelectRepositoryRequest) -> ControllerState:
        try:
            await service.tracker.select(body.path)
        except UnknownRepositoryError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return service.state

    @app.post("/sync", response_model=ControllerState, status_code=status.HTTP_202_ACCEPTED)
    async def sync() -> ControllerState:
        if not service.start_sync():
            raise HTTPException(status_code=409, detail="Repository cannot be synced now")
        return service.state

    @app.post("/publish", response_model=ControllerState, status_code=status.HTTP_202_ACCEPTED)
    async def publish() -> ControllerState:
        if not service.start_publish():
            raise HTTPException(status_code=409, detail="Branch cannot be published now")
        return service.state

    @app.get("/prompts", response_model=list[PendingPrompt])
    async def prompts() -> list[PendingPrompt]:
        return service.prompts.pending()

    @app.post("/prompts/{prompt_id}", response_model=list[PendingPrompt])
    async def answer_prompt(prompt_id: str, body: PromptAnswer) -> list[PendingPrompt]:
        try:
            if body.accepted is not None:
                service.prompts.answer_confirm(prompt_id, body.accepted)
            else:
                service.prompts.answer_pick(prompt_id, body.selection)
        except PromptNotFoundError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown prompt {prompt_id}") from exc
        except PromptAnswerError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return service.prompts.pending()

    @app.delete("/prompts/{prompt_id}", response_model=list[PendingPrompt])
    async def cancel_prompt(prompt_id: str) -> list[PendingPrompt]:
        try:
            service.prompts.cancel(prompt_id)
        except PromptNotFoundError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown prompt {prompt_id}") from exc
        return service.prompts.pending()

    @app.get("/notifications", response_model=list[Notification])
    async def notifications() -> list[Notification]:
        return service.notifier.recent()

    @app.get("/config")
    async def config() -> dict[str, Any]:
        return service.public_config()

    return app
