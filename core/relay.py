import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
import discord

log = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
MESSAGE_LIMIT = 2000


@dataclass
class Attachment:
    filename: str
    url: str


def extract_attachments(payload: Any) -> List[Attachment]:
    if not isinstance(payload, dict):
        return []
    raw = payload.get("attachments")
    if not isinstance(raw, list):
        return []
    attachments = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        attachments.append(
            Attachment(
                filename=str(entry.get("filename") or ""),
                url=str(entry.get("url") or ""),
            )
        )
    return attachments


def format_attachments(attachments: List[Attachment]) -> str:
    return "".join(f"File name: {item.filename}\nURL: {item.url}\n" for item in attachments)


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """Split text on line boundaries into chunks that fit a single message."""

    chunks: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


class AttachmentRelay:
    """Re-fetch a message over REST and reply with its attachment listing."""

    def __init__(
        self,
        token: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        api_base: str = DISCORD_API_BASE,
        request_timeout: float = 15,
    ):
        self._token = token
        self._session = session
        self._owns_session = session is None
        self._api_base = api_base.rstrip("/")
        self._request_timeout = request_timeout

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._request_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def fetch_message(self, channel_id: int, message_id: int) -> Optional[Dict[str, Any]]:
        url = f"{self._api_base}/channels/{channel_id}/messages/{message_id}"
        headers = {"Authorization": f"Bot {self._token}"}
        session = self._get_session()
        async with session.get(url, headers=headers) as resp:
            if resp.status < 200 or resp.status >= 300:
                log.warning("Failed to fetch message %s: HTTP %s", message_id, resp.status)
                return None
            return await resp.json()

    async def relay(self, message: discord.Message) -> bool:
        try:
            payload = await self.fetch_message(message.channel.id, message.id)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            log.warning("Error fetching message %s: %s", message.id, exc)
            return False
        if payload is None:
            return False

        attachments = extract_attachments(payload)
        if not attachments:
            log.info("Message %s has no attachments", message.id)
            return False

        try:
            for chunk in split_message(format_attachments(attachments)):
                await message.reply(chunk)
        except discord.HTTPException as exc:
            log.warning("Error replying to message %s: %s", message.id, exc)
            return False
        return True

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
