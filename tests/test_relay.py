import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import discord
import pytest

from core.relay import (
    Attachment,
    AttachmentRelay,
    extract_attachments,
    format_attachments,
    split_message,
)


class _FakeResponse:
    def __init__(self, status=200, payload=None, error=None):
        self.status = status
        self._payload = payload
        self._error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self):
        if self._error is not None:
            raise self._error
        return self._payload


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, headers=None):
        self.calls.append((url, headers))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


def _message(channel_id=10, message_id=20):
    return SimpleNamespace(id=message_id, channel=SimpleNamespace(id=channel_id), reply=AsyncMock())


ATTACHMENTS_PAYLOAD = {
    "id": "20",
    "attachments": [
        {"filename": "report.pdf", "url": "https://cdn.discordapp.com/attachments/10/1/report.pdf"},
        {"filename": "cat.png", "url": "https://cdn.discordapp.com/attachments/10/2/cat.png"},
    ],
}


def test_extract_attachments_reads_filename_and_url():
    assert extract_attachments(ATTACHMENTS_PAYLOAD) == [
        Attachment("report.pdf", "https://cdn.discordapp.com/attachments/10/1/report.pdf"),
        Attachment("cat.png", "https://cdn.discordapp.com/attachments/10/2/cat.png"),
    ]


@pytest.mark.parametrize("payload", [None, [], {}, {"attachments": None}, {"attachments": "nope"}])
def test_extract_attachments_tolerates_missing_array(payload):
    assert extract_attachments(payload) == []


def test_extract_attachments_keeps_partial_entries():
    assert extract_attachments({"attachments": [{"filename": "a.txt"}, "junk"]}) == [Attachment("a.txt", "")]


def test_format_attachments_lists_each_file():
    text = format_attachments([Attachment("a.txt", "https://x/a.txt"), Attachment("b.txt", "https://x/b.txt")])

    assert text == "File name: a.txt\nURL: https://x/a.txt\nFile name: b.txt\nURL: https://x/b.txt\n"


def test_split_message_respects_limit():
    text = "".join(f"line {n:04d}\n" for n in range(500))

    chunks = split_message(text, limit=100)

    assert "".join(chunks) == text
    assert all(len(chunk) <= 100 for chunk in chunks)
    assert all(chunk.endswith("\n") for chunk in chunks)


def test_split_message_breaks_oversized_lines():
    chunks = split_message("x" * 250, limit=100)

    assert [len(chunk) for chunk in chunks] == [100, 100, 50]


@pytest.mark.asyncio
async def test_relay_replies_with_attachment_listing():
    session = _FakeSession(_FakeResponse(payload=ATTACHMENTS_PAYLOAD))
    relay = AttachmentRelay("token", session=session, api_base="https://discord.test/api/v10/")
    message = _message()

    assert await relay.relay(message) is True

    url, headers = session.calls[0]
    assert url == "https://discord.test/api/v10/channels/10/messages/20"
    assert headers == {"Authorization": "Bot token"}
    message.reply.assert_awaited_once_with(format_attachments(extract_attachments(ATTACHMENTS_PAYLOAD)))


@pytest.mark.asyncio
async def test_relay_without_attachments_sends_nothing():
    session = _FakeSession(_FakeResponse(payload={"id": "20", "attachments": []}))
    relay = AttachmentRelay("token", session=session)
    message = _message()

    assert await relay.relay(message) is False
    message.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_relay_ignores_http_failure():
    relay = AttachmentRelay("token", session=_FakeSession(_FakeResponse(status=404)))
    message = _message()

    assert await relay.relay(message) is False
    message.reply.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "session",
    [
        _FakeSession(error=aiohttp.ClientConnectionError("boom")),
        _FakeSession(_FakeResponse(error=json.JSONDecodeError("bad", "doc", 0))),
    ],
)
async def test_relay_logs_network_and_parse_errors(session):
    relay = AttachmentRelay("token", session=session)
    message = _message()

    assert await relay.relay(message) is False
    message.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_relay_logs_reply_failure(http_error):
    relay = AttachmentRelay("token", session=_FakeSession(_FakeResponse(payload=ATTACHMENTS_PAYLOAD)))
    message = _message()
    message.reply.side_effect = http_error(discord.Forbidden)

    assert await relay.relay(message) is False


@pytest.mark.asyncio
async def test_close_leaves_injected_session_open():
    session = _FakeSession()
    relay = AttachmentRelay("token", session=session)

    await relay.close()

    assert session.closed is False
