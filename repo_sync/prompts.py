from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Protocol, Sequence, TypeVar, Union

from .models import PendingPrompt

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PickOption(Generic[T]):
    label: str
    value: T

    @classmethod
    def of(cls, name: str) -> PickOption[str]:
        return cls(label=name, value=name)


@dataclass(frozen=True)
class Selected(Generic[T]):
    value: T


@dataclass(frozen=True)
class Cancelled:
    pass


PickResult = Union[Selected[T], Cancelled]


class PromptProvider(Protocol):
    async def pick_one(
        self, prompt: str, options: Sequence[PickOption[T]]
    ) -> PickResult[T]: ...

    async def confirm(self, title: str, message: str) -> bool: ...


class PromptNotFoundError(KeyError):
    """Raised when answering a prompt that is not pending."""


class PromptAnswerError(ValueError):
    """Raised when an answer does not fit the prompt."""


@dataclass
class _Pending:
    prompt: PendingPrompt
    future: asyncio.Future[Any]
    values: list[Any] = field(default_factory=list)


class PromptBroker:
    """Prompt provider whose questions are answered out of band, e.g. over HTTP.

    Each prompt is parked as a `PendingPrompt` until `answer_pick`,
    `answer_confirm` or `cancel` resolves it. The awaiting workflow is
    suspended meanwhile; nothing else on the loop is blocked.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout
        self._pending: dict[str, _Pending] = {}

    def pending(self) -> list[PendingPrompt]:
        return [entry.prompt for entry in self._pending.values()]

    async def pick_one(
        self, prompt: str, options: Sequence[PickOption[T]]
    ) -> PickResult[T]:
        entry = self._open(
            kind="pick",
            title=prompt,
            options=[option.label for option in options],
        )
        entry.values = [option.value for option in options]
        result = await self._wait(entry)
        if result is None:
            return Cancelled()
        return Selected(entry.values[result])

    async def confirm(self, title: str, message: str) -> bool:
        entry = self._open(kind="confirm", title=title, message=message)
        return bool(await self._wait(entry))

    def answer_pick(self, prompt_id: str, selection: int | None) -> None:
        entry = self._get(prompt_id)
        if entry.prompt.kind != "pick":
            raise PromptAnswerError(f"Prompt {prompt_id} expects a yes/no answer")
        if selection is not None and not 0 <= selection < len(entry.values):
            raise PromptAnswerError(
                f"Selection {selection} is out of range for prompt {prompt_id}"
            )
        self._resolve(prompt_id, selection)

    def answer_confirm(self, prompt_id: str, accepted: bool) -> None:
        entry = self._get(prompt_id)
        if entry.prompt.kind != "confirm":
            raise PromptAnswerError(f"Prompt {prompt_id} expects a selection")
        self._resolve(prompt_id, accepted)

    def cancel(self, prompt_id: str) -> None:
        self._get(prompt_id)
        self._resolve(prompt_id, None)

    def cancel_all(self) -> None:
        for prompt_id in list(self._pending):
            self._resolve(prompt_id, None)

    def _open(self, kind: str, title: str, **kwargs: Any) -> _Pending:
        prompt = PendingPrompt(
            id=uuid.uuid4().hex,
            kind=kind,
            title=title,
            created_at=datetime.now(timezone.utc),
            **kwargs,
        )
        entry = _Pending(prompt, asyncio.get_running_loop().create_future())
        self._pending[prompt.id] = entry
        _LOGGER.info("Waiting for answer to %s prompt %s: %s", kind, prompt.id, title)
        return entry

    async def _wait(self, entry: _Pending) -> Any:
        try:
            return await asyncio.wait_for(asyncio.shield(entry.future), self._timeout)
        except asyncio.TimeoutError:
            _LOGGER.info("Prompt %s timed out", entry.prompt.id)
            return None
        finally:
            self._pending.pop(entry.prompt.id, None)

    def _get(self, prompt_id: str) -> _Pending:
        try:
            return self._pending[prompt_id]
        except KeyError:
            raise PromptNotFoundError(prompt_id) from None

    def _resolve(self, prompt_id: str, value: Any) -> None:
        entry = self._pending.pop(prompt_id, None)
        if entry is not None and not entry.future.done():
            entry.future.set_result(value)
