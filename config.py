"""
config.py
Centralised configuration — reads from .env via python-dotenv.
"""

import os
from dotenv import load_dotenv
import discord

load_dotenv()

# ── Bot ──────────────────────────────────────────────────────────────────────────
DISCORD_TOKEN: str = os.getenv("DISCORD_TOKEN", "")
OWNER_ID: int      = int(os.getenv("OWNER_ID", "0"))
ADMIN_IDS: set[int] = {
    int(part) for part in os.getenv("ADMIN_IDS", "").replace(" ", "").split(",") if part.isdigit()
}

# ── Pterodactyl ──────────────────────────────────────────────────────────────────
PTERODACTYL_URL: str     = os.getenv("PTERODACTYL_URL", "").rstrip("/")
PTERODACTYL_API_KEY: str = os.getenv("PTERODACTYL_API_KEY", "")

# ── Uptime / restart ─────────────────────────────────────────────────────────────
# "<number><s|m|h|d>", anything else disables the scheduled restart
BOT_RESTART_INTERVAL: str = os.getenv("BOT_RESTART_INTERVAL", "")
UPTIME_FILE: str          = os.getenv("UPTIME_FILE", "data/uptime.json")

# ── Console ──────────────────────────────────────────────────────────────────────
CONSOLE_CHANNELS_FILE: str   = os.getenv("CONSOLE_CHANNELS_FILE", "data/console_channels.json")
CONSOLE_SNAPSHOT_LINES: int  = int(os.getenv("CONSOLE_SNAPSHOT_LINES", "10"))
CONSOLE_SNAPSHOT_LENGTH: int = int(os.getenv("CONSOLE_SNAPSHOT_LENGTH", "1000"))

# ── Embed colours ────────────────────────────────────────────────────────────────
class Colors:
    SERVERS  = discord.Color.green()
    USAGE    = discord.Color.blue()
    CONSOLE  = discord.Color.dark_grey()
    UPTIME   = discord.Color.teal()
    ERROR    = discord.Color.red()
    SUCCESS  = discord.Color.green()
    WARNING  = discord.Color.orange()
    INFO     = discord.Color.blurple()

# ── Meta ─────────────────────────────────────────────────────────────────────────
BOT_NAME    = "Pterodactyl Console Bot"
BOT_VERSION = "1.0.0"
FOOTER_TEXT = f"{BOT_NAME} v{BOT_VERSION}"
