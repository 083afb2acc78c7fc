from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Repository(BaseModel):
    model_config = ConfigDict(frozen=True)

    local_path: str


class AheadBehind(BaseModel):
    model_config = ConfigDict(frozen=True)

    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)


class RepositoryStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    branch: str | None = None
    upstream_branch: str | None = None
    ahead_behind: AheadBehind | None = None

    @model_validator(mode="after")
    def _check_tracking(self) -> RepositoryStatus:
        if self.ahead_behind is not None and not self.upstream_branch:
            raise ValueError("ahead_behind requires an upstream_branch")
        return self


class SyncMethod(str, Enum):
    MERGE = "merge"
    REBASE = "rebase"


class Notification(BaseModel):
    level: Literal["warning", "error"]
    message: str
    created_at: datetime


class PendingPrompt(BaseModel):
    id: str
    kind: Literal["pick", "confirm"]
    title: str
    message: str | None = None
    options: list[str] = Field(default_factory=list)
    created_at: datetime


class PromptAnswer(BaseModel):
    selection: int | None = None
    accepted: bool | None = None


class SelectRepositoryRequest(BaseModel):
    path: str


class ControllerState(BaseModel):
    busy: bool
    can_sync: bool
    can_publish: bool
    repository: Repository | None = None
    status: RepositoryStatus | None = None
    last_error: str | None = None
