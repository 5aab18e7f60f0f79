import asyncio
import logging
import os

import discord
from discord.ext import commands
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

from configs.settings import API_BASE_URL, API_TIMEOUT, DB_PATH
from core.api_client import KittyCreekAPI
from core.database import AnglerRepository, AnglerStore
from core.logging import configure_logging, get_logger, shutdown_logging
from cogs.fishing.achievements import build_ledger
from cogs.fishing.core.models import Angler
from cogs.fishing.services import SocialService

# 1. SETUP LOGGING
configure_logging(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
logger = get_logger("main")

EXTENSIONS = ("core.errors", "cogs.fishing")


class KittyCreekBot(commands.Bot):
    """Bot with the angler store, remote client and shared services attached."""

    def __init__(self):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(command_prefix="!", intents=intents, help_command=None)

        # 2. ATTACH STORAGE & SERVICES
        self.store = AnglerStore(DB_PATH)
        self.api = KittyCreekAPI(API_BASE_URL, timeout=API_TIMEOUT)
        self.anglers = AnglerRepository(self.store, Angler, api=self.api)
        self.ledger = build_ledger()
        self.social = SocialService(self.anglers)

    async def setup_hook(self):
        await self.store.connect()
        if not await self.api.health_check():
            logger.warning("remote_unreachable_at_startup", base_url=API_BASE_URL)

        for extension in EXTENSIONS:
            try:
                await self.load_extension(extension)
                logger.info("extension_loaded", extension=extension)
            except commands.ExtensionError as e:
                logger.error("extension_load_failed", extension=extension, error=str(e), exc_info=True)

    async def on_ready(self):
        logger.info("bot_ready", user=str(self.user), user_id=self.user.id, guilds=len(self.guilds))
        await self.change_presence(activity=discord.Game(name="Fishing at Kitty Creek 🎣"))

    async def close(self):
        logger.info("bot_shutting_down")
        self.social.stop_all()
        await self.anglers.flush()
        await self.api.close()
        await self.store.close()
        await super().close()


async def main():
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        logger.error("missing_discord_token")
        return

    bot = KittyCreekBot()
    async with bot:
        await bot.start(token)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    finally:
        shutdown_logging()
