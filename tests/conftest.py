from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest


@pytest.fixture()
def http_error():
    def _make(cls=discord.HTTPException, status=403, message="Cannot send messages to this user"):
        return cls(SimpleNamespace(status=status, reason="Forbidden"), message)

    return _make


@pytest.fixture()
def make_interaction():
    def _make(*, prompt_id=4242, user_id=77, dm=None, dm_error=None, done=True):
        if dm is None:
            dm = SimpleNamespace(send=AsyncMock())
        create_dm = AsyncMock(side_effect=dm_error) if dm_error else AsyncMock(return_value=dm)
        return SimpleNamespace(
            id=1,
            user=SimpleNamespace(id=user_id, create_dm=create_dm),
            response=SimpleNamespace(
                send_message=AsyncMock(),
                is_done=lambda: done,
            ),
            followup=SimpleNamespace(send=AsyncMock()),
            original_response=AsyncMock(return_value=SimpleNamespace(id=prompt_id)),
            edit_original_response=AsyncMock(),
        )

    return _make


@pytest.fixture()
def make_component():
    def _make(values=None, *, component_type=discord.ComponentType.string_select.value, data=None):
        if data is None:
            data = {"custom_id": "number_select", "component_type": component_type, "values": values}
        return SimpleNamespace(
            data=data,
            response=SimpleNamespace(edit_message=AsyncMock()),
        )

    return _make
