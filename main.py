"""
main.py – Pterodactyl console & uptime Discord bot entry-point.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import signal
import sys
from typing import Dict, Optional

import discord
from discord.ext import commands

from config import (
    DISCORD_TOKEN, OWNER_ID, BOT_NAME, BOT_VERSION,
    BOT_RESTART_INTERVAL, UPTIME_FILE, CONSOLE_CHANNELS_FILE,
)
from api_client import PterodactylClient
from console_channels import ConsoleChannelStore
from console_sessions import ConsoleSessionRegistry
from uptime import RestartRequested, UptimeTracker


# ═══════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("ptero-bot")


# ═══════════════════════════════════════════════════════════════
# ENV CHECK
# ═══════════════════════════════════════════════════════════════

if not DISCORD_TOKEN:
    log.critical("DISCORD_TOKEN is missing from .env — aborting.")
    sys.exit(1)

if not OWNER_ID:
    log.critical("OWNER_ID is missing from .env — aborting.")
    sys.exit(1)


# ═══════════════════════════════════════════════════════════════
# BOT CLASS
# ═══════════════════════════════════════════════════════════════

class PterodactylBot(commands.Bot):
    """Bot that shares the panel client, console streams and uptime tracker with every cog."""

    def __init__(self):
        intents = discord.Intents.default()
        intents.message_content = True      # console channels relay typed commands
        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.ptero = PterodactylClient()
        self.owner_id = OWNER_ID
        self.consoles = ConsoleSessionRegistry(self.ptero)
        self.console_channels = ConsoleChannelStore(CONSOLE_CHANNELS_FILE)
        self.uptime = UptimeTracker(
            UPTIME_FILE,
            BOT_RESTART_INTERVAL,
            notifier=self.notify_owner,
            on_restart=self.request_restart,
        )
        self.restart_requested: Optional[RestartRequested] = None
        self._personal_clients: Dict[str, PterodactylClient] = {}
        self._booted = False

    def client_for(self, api_key: Optional[str] = None) -> PterodactylClient:
        """Shared client, or a cached one for a personal API key."""
        if not api_key:
            return self.ptero
        if api_key not in self._personal_clients:
            self._personal_clients[api_key] = PterodactylClient(api_key)
        return self._personal_clients[api_key]


    # ────────────────────────────────────────────────────────────
    # LOAD COGS + SYNC COMMANDS
    # ────────────────────────────────────────────────────────────

    async def setup_hook(self):
        self.tree.error(self.on_app_command_error)

        cogs = [
            "cogs.help",
            "cogs.servers",
            "cogs.usage",
            "cogs.console",
            "cogs.bot_admin",
        ]

        for cog in cogs:
            try:
                await self.load_extension(cog)
                log.info(f"✓ Loaded {cog}")
            except Exception as exc:
                log.error(f"✗ Failed to load {cog}: {exc}", exc_info=True)

        synced = await self.tree.sync()
        log.info(f"Synced {len(synced)} slash commands globally.")


    # ────────────────────────────────────────────────────────────
    # READY EVENT
    # ────────────────────────────────────────────────────────────

    async def on_ready(self):
        log.info(f"Logged in as {self.user} (ID: {self.user.id})")

        # on_ready fires again after every gateway resume
        if self._booted:
            return
        self._booted = True

        log.info(f"{BOT_NAME} v{BOT_VERSION} is online.")
        self.uptime.start()
        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name="Pterodactyl consoles",
            )
        )


    # ────────────────────────────────────────────────────────────
    # RESTART HOOKS
    # ────────────────────────────────────────────────────────────

    async def notify_owner(self, text: str) -> None:
        owner = await self.fetch_user(self.owner_id)
        await owner.send(text)

    async def request_restart(self, request: RestartRequested) -> None:
        log.info(f"Restart requested ({request.reason}), shutting down for the supervisor.")
        self.restart_requested = request
        await self.close()


    # ────────────────────────────────────────────────────────────
    # CLEAN SHUTDOWN
    # ────────────────────────────────────────────────────────────

    async def close(self):
        self.uptime.stop()
        await self.consoles.close_all()
        for client in self._personal_clients.values():
            await client.close()
        await self.ptero.close()
        await super().close()


    # ────────────────────────────────────────────────────────────
    # GLOBAL SLASH COMMAND ERROR HANDLER
    # ────────────────────────────────────────────────────────────

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: discord.app_commands.AppCommandError,
    ):
        from config import Colors, FOOTER_TEXT

        embed = discord.Embed(
            title="❌ Error",
            color=Colors.ERROR,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
        )
        embed.set_footer(text=FOOTER_TEXT)

        if isinstance(error, discord.app_commands.CheckFailure):
            embed.description = "🔒 You do not have permission to use this command."
        else:
            embed.description = f"An unexpected error occurred:\n```{error}```"
            log.error(f"Unhandled error: {error}", exc_info=error)

        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            pass


# ═══════════════════════════════════════════════════════════════
# RUN
# ═══════════════════════════════════════════════════════════════

def install_signal_handlers(bot: PterodactylBot) -> None:
    loop = asyncio.get_running_loop()

    def _shutdown(signame: str):
        log.info(f"Received {signame}. Graceful shutdown...")
        bot.uptime.stop()
        loop.create_task(bot.close())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support
            pass


async def main() -> int:
    bot = PterodactylBot()
    async with bot:
        install_signal_handlers(bot)
        await bot.start(DISCORD_TOKEN)

    if bot.restart_requested is not None:
        return bot.restart_requested.exit_code
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        log.info("Stopped by keyboard interrupt.")
