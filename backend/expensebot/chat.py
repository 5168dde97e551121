"""Platform-neutral glue between chat SDKs and the command executor."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .executor import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    owner_id: str
    display_name: str | None
    text: str


class ChatAdapter(ABC):
    """One per chat platform: knows who sent a message and how to answer."""

    @abstractmethod
    def identify(self, raw: Any) -> ChatMessage | None:
        """Extract sender and text, or None if the update carries no text."""

    @abstractmethod
    async def send(self, raw: Any, text: str) -> None:
        """Reply in the conversation ``raw`` came from."""


async def dispatch(adapter: ChatAdapter, executor: CommandExecutor, raw: Any) -> str | None:
    """Handle one inbound update; returns the reply that was sent, if any."""
    message = adapter.identify(raw)
    if message is None or not message.text.strip():
        return None

    reply = await asyncio.to_thread(
        executor.handle_message, message.owner_id, message.display_name, message.text
    )
    if reply is None:
        logger.debug("Ignoring unrecognised message from %s", message.owner_id)
        return None

    await adapter.send(raw, reply)
    return reply
