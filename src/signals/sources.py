"""Collaborator interfaces around the core: where messages come from and who
scores signals.

The core only talks to these through the two protocols below. The Telegram
source polls the Bot API ``getUpdates`` endpoint in discrete requests; there
is no push connection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Protocol

import httpx
import structlog

from config.settings import settings
from src.exceptions import ConfigError, FeedError
from src.utils.parsing import _parse_datetime

logger = structlog.get_logger()


@dataclass
class ChannelMessage:
    """A single chat message handed to the desk."""

    channel_id: str
    text: str
    received_at: Optional[datetime] = None


class MessageSource(Protocol):
    async def fetch_messages(self) -> list[ChannelMessage]: ...


class SignalScorer(Protocol):
    """Optional second opinion on a parsed signal (0-100 confidence)."""

    def score_signal(self, signal: Any, quotes: Mapping[Any, Any]) -> Optional[float]: ...


@dataclass
class StaticMessageSource:
    """Serve a fixed batch of messages once, e.g. lines read from a file."""

    messages: list[ChannelMessage] = field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: Iterable[str], channel_id: str = "stdin") -> "StaticMessageSource":
        return cls(
            messages=[
                ChannelMessage(channel_id=channel_id, text=line.rstrip("\n"))
                for line in lines
                if line.strip()
            ]
        )

    async def fetch_messages(self) -> list[ChannelMessage]:
        batch, self.messages = self.messages, []
        return batch


class TelegramMessageSource:
    """Poll a Telegram bot for channel posts and group messages."""

    def __init__(
        self,
        bot_token: str = "",
        api_base: str = "",
        channels: Optional[Iterable[str]] = None,
        poll_timeout: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.bot_token = bot_token or settings.TELEGRAM_BOT_TOKEN
        self.api_base = (api_base or settings.TELEGRAM_API_BASE).rstrip("/")
        self.poll_timeout = (
            settings.TELEGRAM_POLL_TIMEOUT_SECONDS if poll_timeout is None else poll_timeout
        )
        self._channels: set[str] = set(channels or [])
        self._client = client
        self._offset: Optional[int] = None
        self._connected = False
        self.bot_info: dict[str, Any] = {}

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _url(self, method: str) -> str:
        if not self.bot_token:
            raise ConfigError("TELEGRAM_BOT_TOKEN is required")
        return f"{self.api_base}/bot{self.bot_token}/{method}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0 + self.poll_timeout)
        return self._client

    async def _call(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(self._url(method), params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedError(f"telegram {method} failed: {exc}") from exc

        if not payload.get("ok"):
            raise FeedError(payload.get("description") or f"telegram {method} failed")
        return payload.get("result")

    async def connect(self) -> None:
        """Verify the token with ``getMe``."""
        self.bot_info = await self._call("getMe") or {}
        self._connected = True
        logger.info("telegram_connected", bot=self.bot_info.get("username"))

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._connected = False

    def add_channel(self, channel_id: str) -> bool:
        if not self._connected:
            return False
        self._channels.add(str(channel_id))
        return True

    def remove_channel(self, channel_id: str) -> bool:
        self._channels.discard(str(channel_id))
        return True

    def get_channels(self) -> list[str]:
        return sorted(self._channels)

    async def fetch_messages(self) -> list[ChannelMessage]:
        params: dict[str, Any] = {"timeout": self.poll_timeout}
        if self._offset is not None:
            params["offset"] = self._offset

        updates = await self._call("getUpdates", params) or []
        messages: list[ChannelMessage] = []
        for update in updates:
            self._offset = max(self._offset or 0, int(update.get("update_id", 0)) + 1)
            message = self._to_message(update)
            if message is not None:
                messages.append(message)

        if messages:
            logger.debug("telegram_messages_fetched", count=len(messages))
        return messages

    def _to_message(self, update: dict[str, Any]) -> Optional[ChannelMessage]:
        post = update.get("channel_post") or update.get("message")
        if not isinstance(post, dict):
            return None
        text = post.get("text") or post.get("caption")
        if not text:
            return None
        chat_id = str((post.get("chat") or {}).get("id", ""))
        if self._channels and chat_id not in self._channels:
            return None
        return ChannelMessage(
            channel_id=chat_id,
            text=text,
            received_at=_parse_datetime(post.get("date")),
        )
