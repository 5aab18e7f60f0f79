from discord.ext import commands, tasks

from configs.settings import CATCH_FEED_CHANNEL_ID, NOTIFICATION_TOAST_LIMIT
from core.errors import RemoteUnavailable, UserFeedbackError
from core.logging import bind_context, clear_context, get_logger
from .constants import TACKLE, TACKLE_CATEGORIES, LOCATIONS
from .core.state_manager import SessionRegistry, TimingGate
from .services.catch_service import CatchService
from .ui import embeds
from .ui.views import CastView, CatchFeed, DiscordScene

logger = get_logger("fishing.cog")


class FishingCog(commands.Cog):
    """Kitty Creek fishing. Controller only; game rules live in core/ and services/."""

    def __init__(self, bot):
        self.bot = bot
        self.anglers = bot.anglers
        self.social = bot.social
        self.ledger = bot.ledger
        self.catch_service = CatchService(
            self.ledger,
            social=self.social,
            repository=self.anglers,
            broadcast=CatchFeed(bot, CATCH_FEED_CHANNEL_ID),
        )
        self.sessions = SessionRegistry(self._build_gate)
        self.cleanup_idle_sessions.start()

    async def cog_load(self):
        logger.info("fishing_cog_loaded")

    def cog_unload(self):
        self.cleanup_idle_sessions.cancel()
        self.sessions.cancel_all()
        self.social.stop_all()

    @tasks.loop(minutes=30)
    async def cleanup_idle_sessions(self):
        removed = self.sessions.cleanup_idle()
        if removed:
            logger.debug("idle_sessions_cleaned", count=removed)
        self.social.prune(keep=self.sessions.user_ids())

    @cleanup_idle_sessions.before_loop
    async def before_cleanup(self):
        await self.bot.wait_until_ready()

    def _build_gate(self, session):
        return TimingGate(session, on_catch=self._on_catch)

    def _on_catch(self, session, result):
        outcome = self.catch_service.handle_catch(session.angler, result.event)
        scene = session.scene_data.get("scene")
        if scene is not None:
            scene.show_result(result, outcome)

    async def cog_after_invoke(self, ctx):
        clear_context()

    async def _angler(self, ctx):
        bind_context(user_id=ctx.author.id, guild_id=ctx.guild.id if ctx.guild else None, command=ctx.command.name)
        return await self.anglers.get(ctx.author.id, ctx.author.display_name)

    # ==================== MINIGAME ====================

    @commands.hybrid_command(name="cast", description="Cast your line")
    async def cast(self, ctx):
        angler = await self._angler(ctx)
        gate = self.sessions.get_or_create(angler)
        if gate.session.is_active:
            raise UserFeedbackError("Your line is already in the water! Use `cancel` to reel in.")

        scene = DiscordScene(ctx.author.display_name, angler)
        view = CastView(gate, ctx.author.id)
        message = await ctx.send(embed=embeds.create_cast_embed(ctx.author.display_name, angler), view=view)
        scene.bind(message, view)
        gate.scene = scene
        gate.session.scene_data["scene"] = scene
        gate.cast()

    @commands.hybrid_command(name="cancel", description="Reel in your line")
    async def cancel(self, ctx):
        angler = await self._angler(ctx)
        gate = self.sessions.get(angler.user_id)
        if gate is None or not gate.cancel():
            await ctx.send("🎣 Your line isn't in the water.", delete_after=5)
            return
        await ctx.send("🎣 You reeled in your line.")

    # ==================== PROGRESSION ====================

    @commands.hybrid_command(name="profile", description="Your angler profile")
    async def profile(self, ctx):
        angler = await self._angler(ctx)
        await ctx.send(embed=embeds.create_profile_embed(ctx.author.display_name, angler))

    @commands.hybrid_command(name="achievements", description="Achievement progress")
    async def achievements(self, ctx):
        angler = await self._angler(ctx)
        statuses = self.ledger.statuses(angler)
        await ctx.send(embed=embeds.create_achievements_embed(ctx.author.display_name, statuses))

    @commands.hybrid_group(name="shop", description="Tackle shop", invoke_without_command=True, fallback="browse")
    async def shop(self, ctx, category: str = "rods"):
        if category not in TACKLE_CATEGORIES:
            raise UserFeedbackError(f"Categories: {', '.join(TACKLE_CATEGORIES)}")
        angler = await self._angler(ctx)
        await ctx.send(embed=embeds.create_shop_embed(angler, category))

    @shop.command(name="buy", description="Buy tackle")
    async def shop_buy(self, ctx, category: str, item_id: int):
        if category not in TACKLE_CATEGORIES:
            raise UserFeedbackError(f"Categories: {', '.join(TACKLE_CATEGORIES)}")
        angler = await self._angler(ctx)
        result = self.catch_service.handle_purchase(angler, category, item_id)
        if result is None:
            raise UserFeedbackError("You can't buy that (already owned, locked, or not enough money).")
        item = next(i for i in TACKLE[category] if i["id"] == item_id)
        lines = [f"🛒 Bought **{item['name']}**! Balance: ${angler.money}"]
        lines.extend(f"🏆 {u.name} - Tier {u.tier}" for u in result.unlocked)
        await ctx.send("\n".join(lines))

    @shop.command(name="equip", description="Equip owned tackle")
    async def shop_equip(self, ctx, category: str, item_id: int):
        if category not in TACKLE_CATEGORIES:
            raise UserFeedbackError(f"Categories: {', '.join(TACKLE_CATEGORIES)}")
        angler = await self._angler(ctx)
        if not angler.equip(category, item_id):
            raise UserFeedbackError("You don't own that item.")
        await ctx.send(embed=embeds.create_shop_embed(angler, category))

    @commands.hybrid_command(name="travel", description="Fish somewhere else")
    async def travel(self, ctx, location: int):
        angler = await self._angler(ctx)
        if not 0 <= location < len(LOCATIONS) or not angler.travel(location):
            raise UserFeedbackError("That spot is still locked.")
        await ctx.send(f"📍 You walk over to **{LOCATIONS[location]['name']}**.")

    @commands.hybrid_command(name="resetprofile", description="Start over from scratch")
    async def reset_profile(self, ctx, confirm: str = ""):
        if confirm.lower() != "confirm":
            await ctx.send("⚠️ This wipes your progress. Run `resetprofile confirm` to continue.")
            return
        angler = await self._angler(ctx)
        gate = self.sessions.get(angler.user_id)
        if gate is not None and gate.session.is_active:
            gate.cancel()
        angler.reset()
        await ctx.send("🐱 Fresh start! Your tackle box is back to basics.")

    # ==================== SOCIAL ====================

    @commands.hybrid_command(name="leaderboard", description="Biggest catches and fastest reactions")
    async def leaderboard(self, ctx, kind: str = "global"):
        if kind not in ("global", "speed", "local"):
            raise UserFeedbackError("Leaderboards: global, speed, local")
        angler = await self._angler(ctx)
        result = await self.social.leaderboard(angler, kind)
        await ctx.send(embed=embeds.create_leaderboard_embed(kind, result))

    @commands.hybrid_command(name="friends", description="Friends, requests and activity")
    async def friends(self, ctx):
        angler = await self._angler(ctx)
        refresh = await self.social.refresh_friends(angler, force=False)
        message = await ctx.send(embed=embeds.create_friends_embed(ctx.author.display_name, refresh))

        async def on_update(update):
            await message.edit(embed=embeds.create_friends_embed(ctx.author.display_name, update))
            for activity in update.new_activities[:NOTIFICATION_TOAST_LIMIT]:
                await ctx.send(f"📰 {activity.get('username', '?')}: {activity.get('message', 'new activity')}", delete_after=30)

        self.social.start_polling(message.id, angler, on_update)
        self.bot.loop.call_later(300, self.social.stop_polling, message.id)

    @commands.hybrid_command(name="friendadd", description="Send a friend request by code")
    async def friend_add(self, ctx, code: str):
        angler = await self._angler(ctx)
        try:
            await self.social.send_friend_request(angler, code)
        except RemoteUnavailable as e:
            raise UserFeedbackError(f"Couldn't send the request: {e.reason}") from e
        await ctx.send(f"📨 Friend request sent to `{code}`.")

    @commands.hybrid_command(name="friendaccept", description="Accept a friend request")
    async def friend_accept(self, ctx, request_id: str):
        angler = await self._angler(ctx)
        await self.social.accept_friend_request(angler, request_id)
        await ctx.send("🤝 Friend request accepted.")

    @commands.hybrid_command(name="frienddecline", description="Decline a friend request")
    async def friend_decline(self, ctx, request_id: str):
        angler = await self._angler(ctx)
        await self.social.decline_friend_request(angler, request_id)
        await ctx.send("🙅 Friend request declined.")

    @commands.hybrid_command(name="friendremove", description="Remove a friend")
    async def friend_remove(self, ctx, friend_id: str):
        angler = await self._angler(ctx)
        await self.social.remove_friend(angler, friend_id)
        await ctx.send("👋 Friend removed.")


async def setup(bot):
    await bot.add_cog(FishingCog(bot))
