"""
cogs/help.py – Interactive /help command.
"""

from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands

from config import Colors, BOT_NAME
from cogs.utils import make_embed, safe_respond


# ═══════════════════════════════════════════════════════════════════════
# CATEGORY DATA
# ═══════════════════════════════════════════════════════════════════════

HELP_CATEGORIES = {
    "servers": {
        "emoji": "🌐",
        "title": "Servers",
        "commands": """
`/serverlist [api_key]` – browse every server (admin)
`/usage <server_id> [api_key]` – live usage, charts, console snapshot

• Start / Stop / Restart buttons under /usage (admin)
""",
    },
    "console": {
        "emoji": "🖥️",
        "title": "Console Streaming",
        "commands": """
`/console <channel> <server_id> [api_key]` – stream a console into a channel
`/console-stop <channel>` – stop streaming

• Messages typed in a console channel run as server commands
""",
    },
    "bot": {
        "emoji": "🤖",
        "title": "Bot",
        "commands": """
`/uptime` – session and lifetime uptime
`/restartbot` – restart the bot (admin)
`/help` – this panel
""",
    },
}


# ═══════════════════════════════════════════════════════════════════════
# EMBED BUILDERS
# ═══════════════════════════════════════════════════════════════════════

def build_home_embed():
    total_commands = sum(
        data["commands"].count("`/") for data in HELP_CATEGORIES.values()
    )

    return make_embed(
        title=f"🦅 {BOT_NAME}",
        description=(
            "Select a category below to view command details.\n\n"
            f"📊 Total Commands: **{total_commands}**"
        ),
        color=Colors.INFO,
    )


def build_category_embed(key: str):
    data = HELP_CATEGORIES[key]
    return make_embed(
        title=f"{data['emoji']} {data['title']}",
        description=data["commands"],
        color=Colors.INFO,
    )


# ═══════════════════════════════════════════════════════════════════════
# VIEW
# ═══════════════════════════════════════════════════════════════════════

class HelpSelect(discord.ui.Select):
    def __init__(self):
        options = [
            discord.SelectOption(
                label=data["title"],
                description=f"View {data['title']} commands",
                emoji=data["emoji"],
                value=key,
            )
            for key, data in HELP_CATEGORIES.items()
        ]
        super().__init__(placeholder="Select a category...", options=options)

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.edit_message(embed=build_category_embed(self.values[0]), view=self.view)


class HomeButton(discord.ui.Button):
    def __init__(self):
        super().__init__(label="Home", emoji="🏠", style=discord.ButtonStyle.secondary)

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.edit_message(embed=build_home_embed(), view=self.view)


class HelpView(discord.ui.View):
    def __init__(self):
        super().__init__(timeout=120)
        self.add_item(HelpSelect())
        self.add_item(HomeButton())


# ═══════════════════════════════════════════════════════════════════════
# COG
# ═══════════════════════════════════════════════════════════════════════

class HelpCog(commands.Cog, name="Help"):

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="help", description="Show the bot's commands.")
    async def help_cmd(self, interaction: discord.Interaction):
        await safe_respond(interaction, build_home_embed(), view=HelpView(), ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(HelpCog(bot))
