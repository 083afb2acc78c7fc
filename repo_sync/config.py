from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, PositiveInt, ValidationError, model_validator

OPTIONS_PATH = Path(os.getenv("REPO_SYNC_OPTIONS_FILE", "/data/options.json"))
LOCAL_DEV_OPTIONS = Path("./dev/options.json")
DEFAULT_HTTP_PORT = 7999


class MqttSettings(BaseModel):
    enabled: bool = False
    host: str = "core-mosquitto"
    port: int = 1883
    username: str | None = None
    password: str | None = None
    topic: str = "repo_sync/notifications"
    qos: int = Field(default=1, ge=0, le=2)
    retain: bool = False


class Options(BaseModel):
    repositories: list[str] = Field(min_length=1)
    selected_repository: str | None = None
    status_poll_interval: PositiveInt = 30
    prompt_timeout: PositiveInt | None = None
    verify_ssl: bool = True
    log_level: str = Field(default="info", pattern=r"^(trace|debug|info|warning|error)$")
    http_api_port: int = DEFAULT_HTTP_PORT
    notification_history: PositiveInt = 50
    webhook_url: str | None = None
    webhook_verify_ssl: bool = True
    mqtt: MqttSettings = Field(default_factory=MqttSettings)

    @model_validator(mode="after")
    def _check_selection(self) -> Options:
        if self.selected_repository and self.selected_repository not in self.repositories:
            raise ValueError(
                f"selected_repository {self.selected_repository!r} is not listed in repositories"
            )
        return self


def find_options_file() -> Path:
    for candidate in (OPTIONS_PATH, LOCAL_DEV_OPTIONS):
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        f"No options file found. Provide {OPTIONS_PATH} or {LOCAL_DEV_OPTIONS}"
    )


def load_options(path: Path | None = None) -> Options:
    path = path or find_options_file()
    if not path.exists():
        raise FileNotFoundError(f"Options file {path} does not exist")
    try:
        return Options.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise RuntimeError(f"Invalid options in {path}: {exc}") from exc
