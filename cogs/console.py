"""
cogs/console.py  –  /console, /console-stop and console channels.

A console channel is bound to one server: wings output is streamed into it,
and anything a member types there is forwarded to the server as a command.
Bindings live in CONSOLE_CHANNELS_FILE and are resumed on startup.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp
import discord
from discord import app_commands
from discord.ext import commands

from api_client import PterodactylClient, PterodactylError
from config import Colors
from console_sessions import channel_sink
from cogs.utils import make_embed, error_embed, failure_embed, success_embed


log = logging.getLogger("ptero-bot.console")

fmt_status = PterodactylClient.format_status


class ConsoleCog(commands.Cog, name="Console"):

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._restored = False

    @property
    def consoles(self):
        return self.bot.consoles  # type: ignore[attr-defined]

    @property
    def store(self):
        return self.bot.console_channels  # type: ignore[attr-defined]

    # ───────── /console ─────────

    @app_commands.command(name="console", description="Set up console streaming for a Pterodactyl server")
    @app_commands.describe(
        channel="Channel to stream console output to",
        server_id="Server ID to monitor",
        api_key="Your personal API key (optional)",
    )
    async def console(
        self,
        interaction: discord.Interaction,
        channel: discord.TextChannel,
        server_id: str,
        api_key: str | None = None,
    ):
        await interaction.response.defer()
        ptero = self.bot.client_for(api_key)  # type: ignore[attr-defined]

        try:
            server = await ptero.get_server_details(server_id)
            await self.consoles.subscribe(server_id, channel_sink(channel), ptero)
        except PterodactylError as e:
            log.error(f"Console command error for {server_id}: {e}")
            await interaction.followup.send(embed=failure_embed(
                "Failed to set up console streaming. Please check your server ID and API key.", e,
            ))
            return

        previous = self.store.get(channel.id)
        self.store.bind(
            channel.id,
            server_id,
            api_key,
            interaction.guild.id if interaction.guild else None,
            interaction.user.id,
        )
        # the channel moved to another server, drop the stream it no longer shows
        if previous and previous.get("serverId") != server_id:
            await self._release(previous["serverId"])

        name   = server.get("name", server_id)
        status = fmt_status(server.get("status"))

        embed = make_embed(
            title="✅ Console Setup Complete",
            description=f"Console for server **{name}** is now streaming to {channel.mention}",
            color=Colors.SUCCESS,
            fields=[
                ("Server ID", server_id, True),
                ("Status", status, True),
                ("Channel", channel.mention, True),
            ],
        )
        embed.set_footer(text="Messages sent in this channel will be executed as console commands")
        await interaction.followup.send(embed=embed)

        await channel.send(embed=make_embed(
            title="🖥️ Console Connected",
            description=f"Console for **{name}** is now active!\n\nType commands here to execute them on the server.",
            color=Colors.CONSOLE,
            fields=[
                ("Server", name, True),
                ("Status", status, True),
                ("Setup by", interaction.user.mention, True),
            ],
        ))

    # ───────── /console-stop ─────────

    @app_commands.command(name="console-stop", description="Stop console streaming in a channel")
    @app_commands.describe(channel="Console channel to disconnect")
    async def console_stop(self, interaction: discord.Interaction, channel: discord.TextChannel):
        binding = self.store.get(channel.id)
        if binding is None:
            await interaction.response.send_message(
                embed=error_embed(f"{channel.mention} is not a console channel."), ephemeral=True,
            )
            return

        if binding.get("setupBy") != interaction.user.id and not channel.permissions_for(interaction.user).manage_channels:
            await interaction.response.send_message(
                embed=error_embed("🔒 Only the member who set up this console or a channel manager can stop it."),
                ephemeral=True,
            )
            return

        self.store.unbind(channel.id)
        server_id = binding["serverId"]
        await self._release(server_id)

        await interaction.response.send_message(
            embed=success_embed(f"Console streaming for `{server_id}` stopped in {channel.mention}.",
                                title="🔌 Console Disconnected"),
        )

    async def _release(self, server_id: str) -> None:
        """Close the stream for `server_id` unless another channel is still bound to it."""
        if not any(b.get("serverId") == server_id for _, b in self.store.items()):
            await self.consoles.unsubscribe(server_id)

    # ───────── Console channel commands ─────────

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        if message.author.bot or not message.content:
            return
        binding = self.store.get(message.channel.id)
        if binding is None:
            return

        ptero = self.bot.client_for(binding.get("apiKey"))  # type: ignore[attr-defined]
        try:
            await ptero.send_command(binding["serverId"], message.content)
            await message.add_reaction("✅")
        except PterodactylError as e:
            log.error(f"Error sending console command to {binding['serverId']}: {e}")
            await message.add_reaction("❌")

    # ───────── Resume streams ─────────

    @commands.Cog.listener()
    async def on_ready(self):
        if self._restored:
            return
        self._restored = True

        for channel_id, binding in self.store.items():
            channel = self.bot.get_channel(channel_id)
            if channel is None:
                log.warning(f"Console channel {channel_id} is gone, skipping")
                continue
            server_id = binding["serverId"]
            try:
                await self.consoles.subscribe(
                    server_id,
                    channel_sink(channel),
                    self.bot.client_for(binding.get("apiKey")),  # type: ignore[attr-defined]
                )
            except (PterodactylError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                log.error(f"Could not resume console for {server_id} in {channel_id}: {e}")


async def setup(bot: commands.Bot):
    await bot.add_cog(ConsoleCog(bot))
