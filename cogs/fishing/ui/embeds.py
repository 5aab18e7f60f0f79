import discord

from ..constants import GEAR_SLOTS, TACKLE, get_location
from ..core.logic import MissReason
from ..core.models import exp_to_next_level

MISS_TEXT = {
    MissReason.TOO_EAGER: "⚡ Too eager! You yanked the line before the fish bit.",
    MissReason.TOO_SLOW: "🐢 Too slow! The fish spat out the hook.",
    MissReason.UNLUCKY: "🍀 Unlucky! The fish wriggled free.",
}

RARITY_COLORS = {
    "Common": discord.Color.light_grey(),
    "Uncommon": discord.Color.green(),
    "Rare": discord.Color.blue(),
    "Epic": discord.Color.purple(),
    "Legendary": discord.Color.gold(),
    "Trophy": discord.Color.orange(),
}


def progress_bar(value, total, width=10):
    filled = int(min(1.0, value / total) * width) if total > 0 else width
    return f"[{'█' * filled}{'░' * (width - filled)}]"


def create_cast_embed(username, angler):
    """The line is in the air."""
    location = get_location(angler.current_location)
    embed = discord.Embed(
        title=f"🎣 {username} casts at {location['name']}",
        description="Whoosh... the line sails out over the water.",
        color=discord.Color.blue()
    )
    embed.add_field(name="🎒 Gear", value=f"{angler.gear['rod']} • {angler.gear['hook']} • {angler.gear['bait']}", inline=False)
    embed.set_footer(text=f"{location['difficulty']} waters")
    return embed


def create_waiting_embed(username, angler):
    location = get_location(angler.current_location)
    return discord.Embed(
        title=f"🎣 {username} at {location['name']}",
        description="🟠 The bobber floats... wait for a bite.",
        color=discord.Color.blue()
    )


def create_strike_embed(username):
    return discord.Embed(
        title=f"❗ {username}, FISH ON!",
        description="💦 The bobber dips! Hit **Set hook** now!",
        color=discord.Color.red()
    )


def create_result_embed(username, result, outcome=None):
    """Caught or missed, with any level-ups and achievement tiers earned."""
    if not result.caught:
        embed = discord.Embed(
            title=f"🎣 {username} - Missed",
            description=MISS_TEXT.get(result.reason, "The fish got away."),
            color=discord.Color.light_grey()
        )
        if result.reaction_time_ms is not None:
            embed.set_footer(text=f"Reaction: {int(result.reaction_time_ms)}ms")
        return embed

    event = result.event
    embed = discord.Embed(
        title=f"🐟 {username} caught a {event.fish_name}!",
        description=f"**{event.weight} lbs** • {event.rarity}",
        color=RARITY_COLORS.get(event.rarity, discord.Color.green())
    )
    embed.add_field(name="💰 Value", value=f"${event.value}", inline=True)
    embed.add_field(name="✨ Experience", value=f"+{event.experience} XP", inline=True)

    if outcome is not None:
        if outcome.first_catch:
            embed.add_field(name="📚 New species", value="Added to your collection!", inline=False)
        if outcome.level_up is not None or outcome.achievements.level_ups:
            lines = []
            for level_up in filter(None, [outcome.level_up, *outcome.achievements.level_ups]):
                lines.append(f"⭐ Level {level_up.level}")
                lines.extend(f"🔓 {unlock.name}" for unlock in level_up.unlocks)
            embed.add_field(name="🎉 Level up!", value="\n".join(lines), inline=False)
        if outcome.achievements.unlocked:
            lines = [
                f"🏆 {unlock.name} - Tier {unlock.tier} (+{unlock.reward.experience} XP, +${unlock.reward.money})"
                for unlock in outcome.achievements.unlocked
            ]
            embed.add_field(name="Achievements", value="\n".join(lines), inline=False)

    if event.reaction_time_ms is not None:
        embed.set_footer(text=f"Reaction: {event.reaction_time_ms}ms")
    return embed


def create_catch_feed_embed(payload):
    """One line in the shared catch feed, built from the activity payload."""
    embed = discord.Embed(
        description=(
            f"🎣 <@{payload['user_id']}> caught a **{payload.get('fishName', '?')}** "
            f"({payload.get('fishWeight')} lbs) at {payload.get('locationName', '?')}"
        ),
        color=RARITY_COLORS.get(payload.get("fishRarity"), discord.Color.green())
    )
    return embed


def create_achievements_embed(username, statuses):
    embed = discord.Embed(title=f"🏆 Achievements - {username}", color=discord.Color.gold())
    for status in statuses:
        tier = f"Tier {status.current_tier}/{status.max_tier}"
        if status.is_complete:
            value = f"✅ {tier} complete"
        else:
            value = (
                f"{tier}\n{progress_bar(status.current_value, status.next_target)} "
                f"{status.prefix}{status.current_value:g}/{status.prefix}{status.next_target:g} {status.unit} "
                f"({status.progress_percent:.0f}%)"
            )
        embed.add_field(name=status.name, value=value, inline=True)
    return embed


def create_leaderboard_embed(kind, result):
    rows = result.payload or []
    embed = discord.Embed(
        title=f"🏅 {kind.title()} Leaderboard",
        color=discord.Color.orange() if result.is_degraded else discord.Color.gold()
    )
    if not rows:
        embed.description = "No catches recorded yet."
    else:
        lines = []
        for rank, row in enumerate(rows[:10], start=1):
            if kind == "speed":
                score = f"{row.get('reaction_time_ms')}ms"
            else:
                score = f"{row.get('fish_weight')} lbs"
            lines.append(f"**#{rank}** {row.get('username', '?')} - {row.get('fish_name', '?')} ({score})")
        embed.description = "\n".join(lines)
    if result.is_degraded:
        embed.set_footer(text="📡 Offline - showing your local records")
    return embed


def create_friends_embed(username, refresh):
    embed = discord.Embed(title=f"👥 Friends - {username}", color=discord.Color.teal())
    if refresh.friends:
        embed.add_field(
            name=f"Friends ({len(refresh.friends)})",
            value="\n".join(f"• {f.get('username', '?')} (Lv. {f.get('level', '?')})" for f in refresh.friends[:15]),
            inline=False
        )
    else:
        embed.add_field(name="Friends", value="No friends yet. Share your code!", inline=False)
    if refresh.received:
        embed.add_field(
            name=f"📬 Requests ({refresh.badge_count})",
            value="\n".join(f"• {r.get('username', '?')} `#{r.get('id')}`" for r in refresh.received[:10]),
            inline=False
        )
    if refresh.activities:
        embed.add_field(
            name="📰 Recent activity",
            value="\n".join(
                f"• {a.get('username', '?')}: {a.get('message') or a.get('fish_name') or a.get('type', '')}"
                for a in refresh.activities[:5]
            ),
            inline=False
        )
    if refresh.degraded:
        embed.set_footer(text="📡 Offline - friends unavailable")
    return embed


def create_profile_embed(username, angler):
    needed = exp_to_next_level(angler.level)
    embed = discord.Embed(title=f"🐱 {username}", color=discord.Color.blue())
    embed.add_field(name="⭐ Level", value=f"{angler.level}\n{progress_bar(angler.experience, needed)} {angler.experience}/{needed}", inline=True)
    embed.add_field(name="💰 Money", value=f"${angler.money}", inline=True)
    embed.add_field(name="🐟 Caught", value=f"{angler.total_caught} ({angler.total_weight} lbs)", inline=True)
    embed.add_field(name="📍 Location", value=get_location(angler.current_location)["name"], inline=True)
    embed.add_field(name="🎒 Gear", value="\n".join(f"{slot}: {name}" for slot, name in angler.gear.items()), inline=True)
    if angler.friend_code:
        embed.set_footer(text=f"Friend code: {angler.friend_code}")
    return embed


def create_shop_embed(angler, category):
    embed = discord.Embed(title=f"🛒 Tackle Shop - {category.title()}", color=discord.Color.green())
    equipped = angler.gear.get(GEAR_SLOTS[category])
    lines = []
    for item in TACKLE[category]:
        if item["name"] == equipped:
            tag = "🎣 equipped"
        elif angler.owns_tackle(category, item["id"]):
            tag = "✅ owned"
        elif angler.level < item["unlock_level"]:
            tag = f"🔒 Lv. {item['unlock_level']}"
        else:
            tag = f"${item['cost']}"
        lines.append(f"`{item['id']}` **{item['name']}** - {tag}")
    embed.description = "\n".join(lines)
    embed.set_footer(text=f"Balance: ${angler.money}")
    return embed
