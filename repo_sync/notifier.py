from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Literal

import httpx

from .config import Options
from .models import Notification
from .mqtt_client import MqttPublisher

_LOGGER = logging.getLogger(__name__)


class Notifier:
    def __init__(self, options: Options, client: httpx.AsyncClient | None = None) -> None:
        self._history: deque[Notification] = deque(maxlen=options.notification_history)
        self._mqtt = MqttPublisher(options.mqtt)
        self._webhook_url = options.webhook_url
        self._client = client
        self._owns_client = False
        if self._webhook_url and self._client is None:
            self._client = httpx.AsyncClient(timeout=20, verify=options.webhook_verify_ssl)
            self._owns_client = True

    def recent(self) -> list[Notification]:
        return list(self._history)

    async def warn(self, message: str) -> None:
        _LOGGER.warning(message)
        await self._deliver("warning", message)

    async def error(self, message: str) -> None:
        _LOGGER.error(message)
        await self._deliver("error", message)

    async def _deliver(self, level: Literal["warning", "error"], message: str) -> None:
        notification = Notification(
            level=level, message=message, created_at=datetime.now(timezone.utc)
        )
        self._history.append(notification)
        await self._mqtt.publish(notification)
        if self._webhook_url and self._client is not None:
            try:
                resp = await self._client.post(
                    self._webhook_url, json=notification.model_dump(mode="json")
                )
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                _LOGGER.error("Failed to deliver notification webhook: %s", exc)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
