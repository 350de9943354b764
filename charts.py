"""
charts.py
PNG usage charts for /usage, rendered with matplotlib's Agg canvas.

Uses the Figure API instead of pyplot so renders can run in worker threads
without touching pyplot's global figure state.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Dict

from matplotlib.figure import Figure


log = logging.getLogger("ptero-bot.charts")

MB = 1024 * 1024

# 400x200 px at 100 dpi
FIGSIZE = (4, 2)
DPI = 100


def _to_png(fig: Figure) -> io.BytesIO:
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=DPI, facecolor="white")
    buffer.seek(0)
    return buffer


def render_ram_chart(memory_bytes: int, memory_limit_mb: int) -> io.BytesIO:
    used_mb = memory_bytes / MB
    percent = min(100.0, used_mb / memory_limit_mb * 100) if memory_limit_mb > 0 else 0.0

    fig = Figure(figsize=FIGSIZE)
    ax = fig.subplots()
    ax.pie(
        [percent, 100 - percent],
        labels=["Used", "Available"],
        colors=["#ff6384", "#36a2eb"],
        startangle=90,
        counterclock=False,
        wedgeprops={"width": 0.4, "edgecolor": "white", "linewidth": 2},
        textprops={"fontsize": 8},
    )
    ax.set_title(f"RAM Usage: {used_mb:.0f}MB / {memory_limit_mb}MB", fontsize=10)
    ax.axis("equal")
    return _to_png(fig)


def render_network_chart(rx_bytes: int, tx_bytes: int) -> io.BytesIO:
    fig = Figure(figsize=FIGSIZE)
    ax = fig.subplots()
    ax.bar(
        ["Download", "Upload"],
        [rx_bytes / MB, tx_bytes / MB],
        color=["#4bc0c0", "#ff9f40"],
        edgecolor="black",
        linewidth=1,
    )
    ax.set_title("Network Usage", fontsize=10)
    ax.set_ylabel("MB", fontsize=8)
    ax.set_ylim(bottom=0)
    ax.tick_params(labelsize=8)
    ax.grid(axis="y", linestyle="--", alpha=0.3)
    fig.tight_layout()
    return _to_png(fig)


def render_usage_charts(resources: Dict, limits: Dict) -> Dict[str, io.BytesIO]:
    """Both charts keyed ``ram`` / ``network``. Render failures are logged and left out."""
    charts: Dict[str, io.BytesIO] = {}
    try:
        charts["ram"] = render_ram_chart(
            resources.get("memory_bytes", 0),
            limits.get("memory", 0),
        )
        charts["network"] = render_network_chart(
            resources.get("network_rx_bytes", 0),
            resources.get("network_tx_bytes", 0),
        )
    except Exception as exc:
        log.error(f"Error generating charts: {exc}", exc_info=True)
    return charts


async def usage_charts(resources: Dict, limits: Dict) -> Dict[str, io.BytesIO]:
    # rendering is blocking, keep it off the event loop
    return await asyncio.to_thread(render_usage_charts, resources, limits)
