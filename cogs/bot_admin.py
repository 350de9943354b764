"""
cogs/bot_admin.py  –  /restartbot and /uptime.
"""

from __future__ import annotations

import asyncio
import logging

import discord
from discord import app_commands
from discord.ext import commands

from config import Colors, BOT_RESTART_INTERVAL
from cogs.utils import is_admin, make_embed
from uptime import UptimeTracker, parse_interval


log = logging.getLogger("ptero-bot.admin")

RESPONSE_GRACE = 2


class BotAdminCog(commands.Cog, name="Bot"):

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.uptime: UptimeTracker = bot.uptime  # type: ignore

    @app_commands.command(name="restartbot", description="Restart the bot to clear cache and refresh connections")
    @is_admin()
    async def restartbot(self, interaction: discord.Interaction):
        embed = make_embed(
            title="🔄 Bot Restart",
            description="Bot is restarting to clear cache and refresh connections...",
            color=Colors.INFO,
            fields=[
                ("Initiated by", interaction.user.mention, True),
                ("Restart Type", "Manual", True),
                ("Expected Downtime", "~10 seconds", True),
            ],
        )
        embed.set_footer(text="The bot should be back online shortly")
        await interaction.response.send_message(embed=embed)

        log.info(f"Bot restart initiated by {interaction.user} ({interaction.user.id})")
        # let the reply reach Discord before the gateway goes away
        await asyncio.sleep(RESPONSE_GRACE)
        await self.uptime.force_restart()

    @app_commands.command(name="uptime", description="Show bot uptime for this session and in total")
    async def uptime_cmd(self, interaction: discord.Interaction):
        interval = BOT_RESTART_INTERVAL if parse_interval(BOT_RESTART_INTERVAL) else "Disabled"
        embed = make_embed(
            title="⏱️ Bot Uptime",
            color=Colors.UPTIME,
            fields=[
                ("Current Session", self.uptime.get_uptime_string(), True),
                ("Total Uptime", self.uptime.get_total_uptime_string(), True),
                ("Scheduled Restart", interval, True),
            ],
        )
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(BotAdminCog(bot))
