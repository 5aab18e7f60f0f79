import asyncio

import discord
from discord.ext import commands

from core.logging import get_logger

logger = get_logger("error_handler")


class KittyCreekError(Exception):
    """Base class for gameplay/core errors. None of these end a session."""


class InputRejected(KittyCreekError):
    """An action arrived in a state that cannot accept it (e.g. set_hook while idle)."""

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"{action} rejected in state {state}")


class RemoteUnavailable(KittyCreekError):
    """The remote service could not be reached or answered with an error."""

    def __init__(self, endpoint: str, reason: str = "", status: int = 0):
        self.endpoint = endpoint
        self.reason = reason
        self.status = status
        super().__init__(f"{endpoint} unavailable: {reason or status}")


class DataCorrupt(KittyCreekError):
    """Stored data could not be interpreted; callers reset or skip the field."""

    def __init__(self, field: str, detail: str = ""):
        self.field = field
        self.detail = detail
        super().__init__(f"corrupt field {field}: {detail}")


class UserFeedbackError(commands.CommandError):
    """Exception for user-facing errors that should be displayed nicely."""
    def __init__(self, message, *args):
        self.message = message
        super().__init__(message, *args)


class ErrorHandler(commands.Cog):
    """Global Error Handler to catch and process command errors."""

    def __init__(self, bot):
        self.bot = bot

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """The event triggered when an error is raised while invoking a command."""

        # If command has its own error handler, ignore global one
        if hasattr(ctx.command, 'on_error'):
            return

        # Get original error if it exists
        error = getattr(error, 'original', error)

        if isinstance(error, (commands.CommandNotFound, commands.NotOwner)):
            return

        if isinstance(error, UserFeedbackError):
            await ctx.send(f"⚠️ {error.message}")
            return

        if isinstance(error, InputRejected):
            logger.info("input_rejected", action=error.action, state=error.state)
            return

        if isinstance(error, RemoteUnavailable):
            logger.warning("remote_unavailable", endpoint=error.endpoint, reason=error.reason)
            await ctx.send("📡 The creek server is unreachable right now. Showing what we have locally.")
            return

        if isinstance(error, commands.BadArgument):
            await ctx.send(f"❌ Invalid argument.\nUsage: `{ctx.prefix}{ctx.command.qualified_name} {ctx.command.signature}`")
            return

        if isinstance(error, commands.MissingRequiredArgument):
            await ctx.send(f"❌ Missing argument: `{error.param.name}`\nUsage: `{ctx.prefix}{ctx.command.qualified_name} {ctx.command.signature}`")
            return

        if isinstance(error, commands.CommandOnCooldown):
            await ctx.send(f"⏳ Easy there! Try again in **{error.retry_after:.1f}s**.", delete_after=5)
            return

        if isinstance(error, asyncio.TimeoutError):
            logger.error("command_timeout", command=str(ctx.command), user_id=ctx.author.id)
            await ctx.send(f"⚠️ `{ctx.command}` timed out.", delete_after=10)
            return

        logger.error("unhandled_command_error", command=str(ctx.command), exc_info=error)

        try:
            embed = discord.Embed(
                title="❌ Something went wrong",
                description="An unexpected error occurred. It has been logged.",
                color=discord.Color.red()
            )
            await ctx.send(embed=embed)
        except discord.Forbidden:
            logger.warning("error_report_forbidden", channel_id=getattr(ctx.channel, "id", None))


async def setup(bot):
    await bot.add_cog(ErrorHandler(bot))
