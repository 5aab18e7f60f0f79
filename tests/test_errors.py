"""Tests for the global command error handler."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from discord.ext import commands

from core.errors import ErrorHandler, InputRejected, RemoteUnavailable, UserFeedbackError


@pytest.fixture
def ctx():
    ctx = MagicMock()
    ctx.command = MagicMock(spec=["qualified_name", "signature"])
    ctx.command.qualified_name = "shop buy"
    ctx.command.signature = "<category> <item_id>"
    ctx.prefix = "!"
    ctx.send = AsyncMock()
    return ctx


@pytest.fixture
def handler():
    return ErrorHandler(MagicMock())


class TestErrorHandler:

    @pytest.mark.asyncio
    async def test_user_feedback_shown(self, handler, ctx):
        await handler.on_command_error(ctx, UserFeedbackError("That spot is still locked."))
        ctx.send.assert_awaited_once_with("⚠️ That spot is still locked.")

    @pytest.mark.asyncio
    async def test_wrapped_remote_error(self, handler, ctx):
        error = commands.CommandInvokeError(RemoteUnavailable("/friends", reason="timeout"))
        await handler.on_command_error(ctx, error)
        assert "unreachable" in ctx.send.await_args.args[0]

    @pytest.mark.asyncio
    async def test_input_rejected_is_silent(self, handler, ctx):
        await handler.on_command_error(ctx, commands.CommandInvokeError(InputRejected("cast", "casting")))
        ctx.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_command_ignored(self, handler, ctx):
        await handler.on_command_error(ctx, commands.CommandNotFound())
        ctx.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_command_with_own_handler_skipped(self, handler, ctx):
        ctx.command = MagicMock()
        await handler.on_command_error(ctx, UserFeedbackError("x"))
        ctx.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_reported(self, handler, ctx):
        await handler.on_command_error(ctx, commands.CommandInvokeError(ZeroDivisionError()))
        assert "embed" in ctx.send.await_args.kwargs
