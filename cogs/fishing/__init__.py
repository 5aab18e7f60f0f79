"""Kitty Creek fishing package."""

from .cog import FishingCog


async def setup(bot):
    await bot.add_cog(FishingCog(bot))
