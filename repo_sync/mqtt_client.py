from __future__ import annotations

import asyncio
import logging

import paho.mqtt.client as mqtt

from .config import MqttSettings
from .models import Notification

_LOGGER = logging.getLogger(__name__)


class MqttPublisher:
    """Publishes notifications to `<topic>/<level>` on the configured broker."""

    def __init__(self, settings: MqttSettings) -> None:
        self._settings = settings

    def topic_for(self, notification: Notification) -> str:
        return f"{self._settings.topic.rstrip('/')}/{notification.level}"

    async def publish(self, notification: Notification) -> None:
        if not self._settings.enabled:
            return
        await asyncio.to_thread(
            self._publish_sync, self.topic_for(notification), notification.model_dump_json()
        )

    def _publish_sync(self, topic: str, body: str) -> None:
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        if self._settings.username:
            client.username_pw_set(self._settings.username, self._settings.password)
        try:
            client.connect(self._settings.host, self._settings.port, keepalive=30)
            client.publish(topic, body, qos=self._settings.qos, retain=self._settings.retain)
            client.disconnect()
            _LOGGER.debug("Published notification to %s", topic)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Failed to publish MQTT notification: %s", exc)
