import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from core.relay import AttachmentRelay
from core.selection import MENU_CUSTOM_ID, SelectionError, SelectionFlow, register
from core.settings import Settings
from core.waiter import ResponseWaiter

log = logging.getLogger(__name__)

SUCCESS_TEXT = "Select command executed successfully."
ERROR_TEXT = "Error executing select command: {error}"
NOT_IMPLEMENTED_TEXT = "Command not implemented yet."
UNKNOWN_TEXT_COMMAND = "I don't know that command. Try !hi."

TEXT_COMMAND_PREFIX = "!"
RELAY_COMMAND = "hi"
# recycle symbol, with and without the emoji presentation selector
RELAY_EMOJIS = {"♻️", "♻"}


async def send_response(interaction: discord.Interaction, content: str) -> None:
    """Send a new response, falling back to a follow-up once answered."""

    try:
        if interaction.response.is_done():
            await interaction.followup.send(content)
        else:
            await interaction.response.send_message(content)
    except discord.HTTPException as exc:
        log.warning("Failed to respond to interaction %s: %s", interaction.id, exc)


class SelectorTree(app_commands.CommandTree):
    async def on_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        if isinstance(error, app_commands.CommandNotFound):
            log.info("Unimplemented command %s", error.name)
            await send_response(interaction, NOT_IMPLEMENTED_TEXT)
            return
        log.error("Unhandled application command error", exc_info=error)


class DiscordTransport(commands.Bot):
    def __init__(
        self,
        settings: Settings,
        *,
        relay: Optional[AttachmentRelay] = None,
        waiter: Optional[ResponseWaiter] = None,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            tree_cls=SelectorTree,
        )
        self.settings = settings
        self.guild_id = settings.guild_id
        self.waiter = waiter or ResponseWaiter()
        self.selection = SelectionFlow(self.waiter, timeout=settings.select_timeout)
        self.relay = relay or AttachmentRelay(settings.discord_token)

    async def setup_hook(self) -> None:
        self.tree.add_command(self._select_command())
        try:
            if self.guild_id:
                guild = discord.Object(id=self.guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                log.info("Slash commands synced to guild %s", self.guild_id)
            else:
                await self.tree.sync()
                log.info("Slash commands synced globally")
        except discord.HTTPException as exc:
            log.warning("Error registering commands: %s", exc)

    def _select_command(self) -> app_commands.Command:
        async def select(interaction: discord.Interaction):
            await self.run_select(interaction)

        return register(select)

    async def run_select(self, interaction: discord.Interaction) -> None:
        try:
            outcome = await self.selection.run(interaction)
        except (SelectionError, discord.HTTPException) as exc:
            log.warning("Select command failed for %s: %s", interaction.user.id, exc)
            await send_response(interaction, ERROR_TEXT.format(error=exc))
            return
        log.info("Select command for %s finished: %s", interaction.user.id, outcome.value)
        await send_response(interaction, SUCCESS_TEXT)

    async def on_ready(self):
        log.info("%s is connected!", self.user)

    async def on_interaction(self, interaction: discord.Interaction):
        if interaction.type != discord.InteractionType.component:
            return
        data = interaction.data or {}
        if data.get("custom_id") != MENU_CUSTOM_ID or interaction.message is None:
            return
        if not self.waiter.resolve(interaction.message.id, interaction):
            log.debug("No pending selection for message %s", interaction.message.id)

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        if self.user and payload.user_id == self.user.id:
            return
        emoji = payload.emoji
        if emoji.is_unicode_emoji():
            log.info("Received unicode reaction: %s", emoji.name)
            if emoji.name not in RELAY_EMOJIS:
                return
            message = await self._fetch_reacted_message(payload)
            if message is not None:
                await self.run_text_command(message, TEXT_COMMAND_PREFIX + RELAY_COMMAND)
        elif emoji.is_custom_emoji():
            log.info("Received custom reaction: id=%s name=%s", emoji.id, emoji.name)
        else:
            log.info("Received unknown reaction type.")

    async def _fetch_reacted_message(self, payload: discord.RawReactionActionEvent) -> Optional[discord.Message]:
        channel = self.get_partial_messageable(payload.channel_id)
        try:
            return await channel.fetch_message(payload.message_id)
        except discord.HTTPException as exc:
            log.warning("Failed to fetch message %s for reaction: %s", payload.message_id, exc)
            return None

    async def run_text_command(self, message: discord.Message, content: str) -> None:
        if not content.startswith(TEXT_COMMAND_PREFIX):
            return
        name = content[len(TEXT_COMMAND_PREFIX) :].strip()
        if name == RELAY_COMMAND:
            await self.relay.relay(message)
            return
        try:
            await message.reply(UNKNOWN_TEXT_COMMAND)
        except discord.HTTPException as exc:
            log.warning("Error sending reply: %s", exc)

    async def close(self):
        await self.relay.close()
        await super().close()


async def run_discord_bot(settings: Settings, bot: Optional[DiscordTransport] = None):
    bot = bot or DiscordTransport(settings)
    try:
        await bot.start(settings.discord_token)
    finally:
        await bot.close()
