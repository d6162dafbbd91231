import enum
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import discord
from discord import app_commands

from core.waiter import ResponseWaiter

log = logging.getLogger(__name__)

COMMAND_NAME = "select"
COMMAND_DESCRIPTION = "choose a number between 1 and 10"
MENU_CUSTOM_ID = "number_select"
CHOICES = tuple(str(n) for n in range(1, 11))

PROMPT_TEXT = "Pick a number from 1 to 10!"
PLACEHOLDER_TEXT = "Choose a number from 1 to 10"
CONFIRMATION_TEXT = "You chose **{choice}**!"
DM_SENT_TEXT = "Sent you a DM! Please check it."
DM_FAILED_TEXT = "Could not send you a DM."
TIMEOUT_TEXT = "Timed out waiting for a selection. Run /select again to retry."

STRING_SELECT = discord.ComponentType.string_select.value


class SelectionError(Exception):
    """Raised when a component interaction is not a single string selection."""


class SelectionOutcome(enum.Enum):
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"
    TIMED_OUT = "timed_out"


def register(callback: Callable[[discord.Interaction], Awaitable[None]]) -> app_commands.Command:
    return app_commands.command(name=COMMAND_NAME, description=COMMAND_DESCRIPTION)(callback)


def build_menu(timeout: Optional[float] = None) -> discord.ui.View:
    view = discord.ui.View(timeout=timeout)
    view.add_item(
        discord.ui.Select(
            custom_id=MENU_CUSTOM_ID,
            placeholder=PLACEHOLDER_TEXT,
            min_values=1,
            max_values=1,
            options=[discord.SelectOption(label=value, value=value) for value in CHOICES],
        )
    )
    return view


def extract_choice(data: Optional[Mapping[str, Any]]) -> str:
    """Return the first selected value of a string select payload."""

    if not isinstance(data, Mapping):
        raise SelectionError("Unexpected interaction data kind")
    if data.get("component_type") != STRING_SELECT:
        raise SelectionError("Unexpected interaction data kind")
    values = data.get("values")
    if not isinstance(values, list) or not values or not isinstance(values[0], str):
        raise SelectionError("Unexpected interaction data kind")
    return values[0]


class SelectionFlow:
    def __init__(self, waiter: ResponseWaiter, *, timeout: float):
        self.waiter = waiter
        self.timeout = timeout

    async def run(self, interaction: discord.Interaction) -> SelectionOutcome:
        view = build_menu(self.timeout)
        await interaction.response.send_message(PROMPT_TEXT, view=view, ephemeral=True)
        prompt = await interaction.original_response()
        try:
            component = await self.waiter.wait_for(prompt.id, self.timeout)
        finally:
            view.stop()

        if component is None:
            await interaction.edit_original_response(content=TIMEOUT_TEXT, view=None)
            return SelectionOutcome.TIMED_OUT

        try:
            choice = extract_choice(component.data)
        except SelectionError:
            try:
                await interaction.edit_original_response(view=None)
            except discord.HTTPException as exc:
                log.warning("Failed to remove menu from prompt %s: %s", prompt.id, exc)
            raise
        log.info("User %s selected %s", interaction.user.id, choice)

        try:
            dm_channel = await interaction.user.create_dm()
            await dm_channel.send(CONFIRMATION_TEXT.format(choice=choice))
        except discord.HTTPException as exc:
            log.warning("Failed to DM selection to %s: %s", interaction.user.id, exc)
            await component.response.edit_message(content=DM_FAILED_TEXT, view=None)
            return SelectionOutcome.DELIVERY_FAILED

        await component.response.edit_message(content=DM_SENT_TEXT, view=None)
        return SelectionOutcome.DELIVERED
