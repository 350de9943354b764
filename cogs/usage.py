"""
cogs/usage.py  –  /usage command and the Start / Stop / Restart buttons.

The power buttons carry ``<action>_<identifier>`` custom ids and are picked up
by a global interaction listener rather than a live View, so buttons on old
/usage messages keep working after the bot restarts.
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

import charts
from api_client import PterodactylClient, PterodactylError
from config import Colors, CONSOLE_SNAPSHOT_LINES, CONSOLE_SNAPSHOT_LENGTH
from cogs.utils import (
    is_admin_id, make_embed, error_embed, failure_embed, console_snapshot,
)
from uptime import format_uptime


log = logging.getLogger("ptero-bot.usage")

fmt_status = PterodactylClient.format_status
fmt_bytes  = PterodactylClient.format_bytes

MB = 1024 * 1024

POWER_ACTIONS = {
    # action: (past tense, emoji)
    "start":   ("started",   "▶️"),
    "stop":    ("stopped",   "⏹️"),
    "restart": ("restarted", "🔄"),
}


def parse_power_id(custom_id: str) -> tuple[str, str] | None:
    action, sep, identifier = custom_id.partition("_")
    if not sep or action not in POWER_ACTIONS or not identifier:
        return None
    return action, identifier


def build_power_row(identifier: str, status: str) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        custom_id=f"start_{identifier}", label="Start", emoji="▶️",
        style=discord.ButtonStyle.success, disabled=status == "running",
    ))
    view.add_item(discord.ui.Button(
        custom_id=f"stop_{identifier}", label="Stop", emoji="⏹️",
        style=discord.ButtonStyle.danger, disabled=status == "offline",
    ))
    view.add_item(discord.ui.Button(
        custom_id=f"restart_{identifier}", label="Restart", emoji="🔄",
        style=discord.ButtonStyle.primary, disabled=status == "offline",
    ))
    return view


def build_usage_embed(identifier: str, server: dict, usage: dict, history: list[str]) -> discord.Embed:
    status    = usage.get("current_state", "offline")
    resources = usage.get("resources", {})
    limits    = server.get("limits", {})

    mem_b   = resources.get("memory_bytes", 0)
    mem_lim = limits.get("memory", 0) * MB
    mem_pct = f"{mem_b / mem_lim * 100:.1f}%" if mem_lim else "unlimited"

    snapshot = console_snapshot(history, CONSOLE_SNAPSHOT_LINES, CONSOLE_SNAPSHOT_LENGTH)

    embed = make_embed(
        title=f"📊 {server.get('name', identifier)} - Usage Statistics",
        description=f"**Status:** {fmt_status(status)}",
        color=Colors.USAGE,
        fields=[
            ("💾 Memory Usage", f"{fmt_bytes(mem_b)} / {fmt_bytes(mem_lim) if mem_lim else 'Unlimited'}\n({mem_pct})", True),
            ("⚡ CPU Usage", f"{resources.get('cpu_absolute', 0.0):.1f}%", True),
            ("💽 Disk Usage",
             f"{fmt_bytes(resources.get('disk_bytes', 0))} / {fmt_bytes(limits.get('disk', 0) * MB)}", True),
            ("🌐 Network I/O",
             f"⬇️ {fmt_bytes(resources.get('network_rx_bytes', 0))}\n"
             f"⬆️ {fmt_bytes(resources.get('network_tx_bytes', 0))}", True),
            # wings reports uptime in milliseconds
            ("⏱️ Uptime", format_uptime(resources.get("uptime", 0)), True),
            ("🆔 Server ID", identifier, True),
            ("🖥️ Console Snapshot", f"```\n{snapshot}\n```", False),
        ],
    )
    embed.set_footer(text="Last updated")
    return embed


# ══════════════════════════════════════════════════════════════════════════════════
# COG
# ══════════════════════════════════════════════════════════════════════════════════
class UsageCog(commands.Cog, name="Usage"):

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.ptero: PterodactylClient = bot.ptero  # type: ignore

    @app_commands.command(name="usage", description="Show server resource usage and console snapshot")
    @app_commands.describe(
        server_id="Server ID to check usage for",
        api_key="Your personal API key (optional)",
    )
    async def usage(self, interaction: discord.Interaction, server_id: str, api_key: str | None = None):
        await interaction.response.defer()
        ptero = self.bot.client_for(api_key)  # type: ignore[attr-defined]

        try:
            server = await ptero.get_server(server_id)
            usage  = await ptero.get_usage(server_id)
        except PterodactylError as e:
            log.error(f"Usage command error for {server_id}: {e}")
            await interaction.followup.send(embed=failure_embed("Failed to fetch server usage data.", e))
            return

        # the snapshot is a nice-to-have, an unreachable node only empties it
        try:
            history = await ptero.get_console_history(server_id)
        except PterodactylError as e:
            log.warning(f"No console history for {server_id}: {e}")
            history = []

        embed  = build_usage_embed(server_id, server, usage, history)
        images = await charts.usage_charts(usage.get("resources", {}), server.get("limits", {}))

        files = []
        if "ram" in images:
            files.append(discord.File(images["ram"], filename="ram-usage.png"))
            embed.set_image(url="attachment://ram-usage.png")
        if "network" in images:
            files.append(discord.File(images["network"], filename="network-usage.png"))
            embed.set_thumbnail(url="attachment://network-usage.png")

        view = build_power_row(server_id, usage.get("current_state", "offline"))
        await interaction.followup.send(embed=embed, view=view, files=files)
        # clicks are served by on_interaction, the view itself need not be tracked
        view.stop()

    # ───────── Power buttons ─────────

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction):
        if interaction.type is not discord.InteractionType.component:
            return
        parsed = parse_power_id((interaction.data or {}).get("custom_id", ""))
        if parsed is None:
            return
        action, identifier = parsed

        if not is_admin_id(interaction.user.id):
            await interaction.response.send_message(
                embed=error_embed("🔒 You do not have permission to control servers."),
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True)
        past, emoji = POWER_ACTIONS[action]
        power = {
            "start":   self.ptero.start_server,
            "stop":    self.ptero.stop_server,
            "restart": self.ptero.restart_server,
        }[action]

        try:
            await power(identifier)
            server = await self.ptero.get_server_details(identifier)
        except PterodactylError as e:
            log.error(f"Power action {action} failed for {identifier}: {e}")
            await interaction.followup.send(
                embed=failure_embed(f"Failed to {action} the server.", e, title="❌ Action Failed"),
                ephemeral=True,
            )
            return

        embed = make_embed(
            title=f"{emoji} Server {past.capitalize()}",
            description=f"Server **{server.get('name', identifier)}** has been {past} successfully.",
            color=Colors.SUCCESS,
            fields=[
                ("Server ID", identifier, True),
                ("Action", past.capitalize(), True),
                ("Status", fmt_status(server.get("status")), True),
            ],
        )
        await interaction.followup.send(embed=embed, ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(UsageCog(bot))
