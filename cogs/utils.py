"""
cogs/utils.py  –  Shared helpers for all cogs.
"""

from __future__ import annotations

import datetime
import re
from typing import Any, Iterable

import discord
from discord import app_commands

from config import Colors, FOOTER_TEXT, OWNER_ID, ADMIN_IDS


ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")


# ── Admin-only app command check ─────────────────────────────────────────────────
def is_admin_id(user_id: int) -> bool:
    return user_id == OWNER_ID or user_id in ADMIN_IDS


def is_admin():
    async def predicate(interaction: discord.Interaction) -> bool:
        if not is_admin_id(interaction.user.id):
            raise app_commands.CheckFailure("Admin-only command.")
        return True
    return app_commands.check(predicate)


# ── Embed builders ───────────────────────────────────────────────────────────────
def make_embed(
    title: str,
    description: str = "",
    color: discord.Color = Colors.INFO,
    fields: list[tuple[str, str, bool]] | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.set_footer(text=FOOTER_TEXT)
    if fields:
        for name, value, inline in fields:
            embed.add_field(name=name, value=str(value) or "N/A", inline=inline)
    return embed


def error_embed(description: str, title: str = "❌ Error") -> discord.Embed:
    return make_embed(title, description, Colors.ERROR)


def failure_embed(description: str, error: Any, title: str = "❌ Error") -> discord.Embed:
    """Error embed carrying the underlying error text in a code block."""
    detail = getattr(error, "message", None) or str(error)
    return make_embed(
        title, description, Colors.ERROR,
        fields=[("Error Details", f"```{trunc(detail, 1000)}```", False)],
    )


def success_embed(description: str, title: str = "✅ Success") -> discord.Embed:
    return make_embed(title, description, Colors.SUCCESS)


# ── Safe respond (handles already-responded interactions) ────────────────────────
async def safe_respond(
    interaction: discord.Interaction,
    embed: discord.Embed,
    ephemeral: bool = True,
    view: discord.ui.View | None = None,
):
    kwargs: dict = {"embed": embed, "ephemeral": ephemeral}
    if view is not None:
        kwargs["view"] = view
    try:
        if interaction.response.is_done():
            await interaction.followup.send(**kwargs)
        else:
            await interaction.response.send_message(**kwargs)
    except discord.HTTPException:
        pass


# ── Text helpers ─────────────────────────────────────────────────────────────────
def trunc(text: Any, length: int = 1024) -> str:
    s = str(text) if text else ""
    return s if len(s) <= length else s[: length - 3] + "..."


def strip_ansi(text: str) -> str:
    return ANSI_RE.sub("", text)


def console_snapshot(lines: Iterable[str], count: int = 10, length: int = 1000) -> str:
    """Last ``count`` console lines, colour codes removed, cut to ``length`` chars."""
    recent = list(lines)[-count:] if count > 0 else []
    text = "\n".join(strip_ansi(line) for line in recent)[:length]
    return text or "No recent console output"
