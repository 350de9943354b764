"""
cogs/servers.py  –  /serverlist command.

Admin-only paginated browser over every server the API key can see:
Previous / Next buttons (wrapping) plus a jump-to dropdown.
"""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from api_client import PterodactylClient, PterodactylError
from config import Colors
from cogs.utils import is_admin, make_embed, error_embed, failure_embed, trunc


log = logging.getLogger("ptero-bot.servers")

fmt_status = PterodactylClient.format_status
fmt_bytes  = PterodactylClient.format_bytes


async def collect_server_details(ptero: PterodactylClient, servers: list[dict]) -> list[dict]:
    """Full details per server; a server whose details fail keeps its basic info."""
    details = []
    for server in servers:
        identifier = server.get("identifier", "")
        try:
            details.append(await ptero.get_server_details(identifier))
        except PterodactylError as e:
            log.error(f"Failed to get details for server {identifier}: {e}")
            details.append({
                "identifier": identifier,
                "name": server.get("name") or "Unknown",
                "status": server.get("status") or "unknown",
                "error": True,
            })
    return details


def _allocation(server: dict) -> dict | None:
    allocs = server.get("relationships", {}).get("allocations", {}).get("data", [])
    for alloc in allocs:
        attr = alloc.get("attributes", {})
        if attr.get("is_default"):
            return attr
    return allocs[0].get("attributes", {}) if allocs else None


def build_server_embed(servers: list[dict], index: int) -> discord.Embed:
    server = servers[index]
    embed = make_embed(
        title=f"🖥️ Server: {server.get('name', 'Unknown')}",
        description=f"**Status:** {fmt_status(server.get('status'))}",
        color=Colors.SERVERS,
    )

    embed.add_field(
        name="🆔 Server Information",
        value=(
            f"**ID:** {server.get('identifier', '?')}\n"
            f"**Node:** {server.get('node') or 'Unknown'}\n"
            f"**Docker Image:** `{server.get('docker_image') or 'Unknown'}`"
        ),
        inline=False,
    )

    alloc = _allocation(server)
    embed.add_field(
        name="🌐 Network & Access",
        value=(
            f"**IP:** `{alloc.get('ip_alias') or alloc.get('ip', '?')}:{alloc.get('port', '?')}`\n"
            f"**Notes:** {alloc.get('notes') or 'None'}"
            if alloc else "No allocation data"
        ),
        inline=True,
    )

    limits = server.get("limits")
    embed.add_field(
        name="💾 Resource Limits",
        value=(
            f"**Memory:** {limits.get('memory')}MB\n**CPU:** {limits.get('cpu')}%\n**Disk:** {limits.get('disk')}MB"
            if limits else "No limit data"
        ),
        inline=True,
    )

    features = server.get("feature_limits")
    embed.add_field(
        name="🔧 Feature Limits",
        value=(
            f"**Databases:** {features.get('databases')}\n**Backups:** {features.get('backups')}\n"
            f"**Allocations:** {features.get('allocations')}"
            if features else "No feature limit data"
        ),
        inline=True,
    )

    if server.get("invocation"):
        embed.add_field(name="🚀 Startup Command", value=f"```{trunc(server['invocation'], 1000)}```", inline=False)

    usage = server.get("usage", {}).get("resources")
    if usage and not server.get("error"):
        embed.add_field(
            name="📊 Current Usage",
            value=(
                f"**Memory:** {fmt_bytes(usage.get('memory_bytes', 0))}\n"
                f"**CPU:** {usage.get('cpu_absolute', 0.0):.1f}%\n"
                f"**Network:** ⬇️{fmt_bytes(usage.get('network_rx_bytes', 0))} "
                f"⬆️{fmt_bytes(usage.get('network_tx_bytes', 0))}"
            ),
            inline=False,
        )

    embed.set_footer(text=f"Server {index + 1} of {len(servers)} | Last updated")
    return embed


# ══════════════════════════════════════════════════════════════════════════════════
# Pager
# ══════════════════════════════════════════════════════════════════════════════════
class ServerPager(discord.ui.View):
    def __init__(self, servers: list[dict], owner_id: int):
        super().__init__(timeout=300)
        self.servers  = servers[:25]
        self.owner_id = owner_id
        self.index    = 0
        self.message: discord.Message | None = None

        self.jump = discord.ui.Select(placeholder="Jump to server...", row=1)
        self.jump.callback = self._jump
        self.add_item(self.jump)
        self._refresh_options()

    def _refresh_options(self):
        self.jump.options = [
            discord.SelectOption(
                label=trunc(srv.get("name", "Unknown"), 25),
                description=trunc(f"{fmt_status(srv.get('status'))} | ID: {srv.get('identifier', '?')}", 50),
                value=str(i),
                default=i == self.index,
            )
            for i, srv in enumerate(self.servers)
        ]

    def move(self, step: int) -> int:
        self.index = (self.index + step) % len(self.servers)
        self._refresh_options()
        return self.index

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.owner_id:
            await interaction.response.send_message("You cannot interact with this menu.", ephemeral=True)
            return False
        return True

    async def _show(self, interaction: discord.Interaction):
        await interaction.response.edit_message(embed=build_server_embed(self.servers, self.index), view=self)

    @discord.ui.button(label="Previous", emoji="⬅️", style=discord.ButtonStyle.secondary, row=0)
    async def prev_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.move(-1)
        await self._show(interaction)

    @discord.ui.button(label="Next", emoji="➡️", style=discord.ButtonStyle.secondary, row=0)
    async def next_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.move(1)
        await self._show(interaction)

    async def _jump(self, interaction: discord.Interaction):
        self.index = int(self.jump.values[0])
        self._refresh_options()
        await self._show(interaction)

    async def on_timeout(self):
        for item in self.children:
            item.disabled = True
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException as e:
                log.error(f"Could not disable server list components: {e}")


# ══════════════════════════════════════════════════════════════════════════════════
# COG
# ══════════════════════════════════════════════════════════════════════════════════
class ServersCog(commands.Cog, name="Servers"):

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="serverlist", description="View all servers (Admin only)")
    @app_commands.describe(api_key="Your personal API key (optional)")
    @is_admin()
    async def serverlist(self, interaction: discord.Interaction, api_key: str | None = None):
        await interaction.response.defer()
        ptero = self.bot.client_for(api_key)  # type: ignore[attr-defined]

        try:
            servers = await ptero.list_servers()
        except PterodactylError as e:
            log.error(f"Server list command error: {e}")
            await interaction.followup.send(embed=failure_embed("Failed to fetch server list.", e))
            return

        if not servers:
            await interaction.followup.send(
                embed=error_embed("No servers found or you don't have access to any servers.", title="📋 No Servers Found")
            )
            return

        details = await collect_server_details(ptero, servers)
        view = ServerPager(details, interaction.user.id)
        view.message = await interaction.followup.send(embed=build_server_embed(view.servers, 0), view=view, wait=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(ServersCog(bot))
