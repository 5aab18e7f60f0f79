"""Discord views for the fishing minigame."""

import asyncio

import discord

from core.logging import get_logger
from ..core.state_manager import GateState, SceneHooks
from . import embeds

logger = get_logger("fishing.views")


class DiscordScene(SceneHooks):
    """Renders gate transitions by editing the cast message.

    Edits are scheduled as tasks; the gate never waits on Discord.
    """

    def __init__(self, username, angler):
        self.username = username
        self.angler = angler
        self.message = None
        self.view = None
        self._tasks = set()

    def bind(self, message, view):
        self.message = message
        self.view = view

    def _edit(self, **kwargs):
        if self.message is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._do_edit(**kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _do_edit(self, **kwargs):
        try:
            await self.message.edit(**kwargs)
        except discord.HTTPException as e:
            logger.warning("scene_edit_failed", status=e.status, error=str(e))

    def on_cast(self, session):
        self._edit(embed=embeds.create_cast_embed(self.username, self.angler), view=self.view)

    def on_bobber(self, session, visible):
        if visible:
            self._edit(embed=embeds.create_waiting_embed(self.username, self.angler), view=self.view)

    def on_strike(self, session):
        if self.view is not None:
            self.view.set_hook_button.style = discord.ButtonStyle.danger
        self._edit(embed=embeds.create_strike_embed(self.username), view=self.view)

    def on_result(self, session, result):
        # Catches are rendered by the catch pipeline, which knows about level-ups.
        if not result.caught:
            self.show_result(result)

    def show_result(self, result, outcome=None):
        if self.view is not None:
            self.view.stop()
        self._edit(embed=embeds.create_result_embed(self.username, result, outcome), view=None)


class CatchFeed:
    """Broadcast sink for the catch pipeline: posts each catch to one channel."""

    def __init__(self, bot, channel_id):
        self.bot = bot
        self.channel_id = channel_id
        self._tasks = set()

    def __call__(self, payload):
        if not self.channel_id:
            return
        channel = self.bot.get_channel(self.channel_id)
        if channel is None:
            logger.debug("catch_feed_channel_missing", channel_id=self.channel_id)
            return
        task = asyncio.get_running_loop().create_task(self._send(channel, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, channel, payload):
        try:
            await channel.send(embed=embeds.create_catch_feed_embed(payload))
        except discord.HTTPException as e:
            logger.warning("catch_feed_send_failed", channel_id=self.channel_id, status=e.status, error=str(e))


class CastView(discord.ui.View):
    """Set hook / cancel buttons for one cast."""

    def __init__(self, gate, user_id, timeout=60):
        super().__init__(timeout=timeout)
        self.gate = gate
        self.user_id = user_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.user_id:
            await interaction.response.send_message("❌ That's not your line!", ephemeral=True)
            return False
        return True

    @discord.ui.button(label="Set hook", emoji="🎣", style=discord.ButtonStyle.primary)
    async def set_hook_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        # Resolve before any await so the reaction time excludes the Discord round trip.
        self.gate.set_hook()
        await interaction.response.defer()

    @discord.ui.button(label="Reel in", emoji="✖️", style=discord.ButtonStyle.secondary)
    async def cancel_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        if self.gate.cancel():
            self.stop()
            await interaction.response.edit_message(content="🎣 You reeled in your line.", embed=None, view=None)
        else:
            await interaction.response.defer()

    async def on_timeout(self):
        if self.gate.state is not GateState.IDLE:
            self.gate.cancel()
