from __future__ import annotations

from rich.console import RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .state import Region, Snapshot

APP_TITLE = "CTF>TERM"


def truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width <= 3:
        return value[:width]
    return value[: width - 3] + "..."


def border_style(snapshot: Snapshot, region: Region) -> str:
    return "bright_white" if snapshot.focus == region else "red"


def cursor_title(title: str, idx: int, count: int) -> str:
    return f"{title} {idx + 1}/{count}" if count else title


def region_panel(
    renderable: RenderableType,
    title: str,
    snapshot: Snapshot,
    region: Region,
    align: str = "right",
) -> Panel:
    return Panel(
        renderable,
        title=Text(title, style="bold red"),
        title_align=align,
        border_style=border_style(snapshot, region),
        padding=(0, 0),
    )


def render_running_events(snapshot: Snapshot, width: int) -> Panel:
    body = Text()
    for name in snapshot.running_events:
        body.append("-" * max(1, width) + "\n", style="dim")
        body.append(truncate(name, width) + "\n", style="bold")
    if not snapshot.running_events:
        body.append("Loading..." if snapshot.is_refreshing else "None", style="dim")
    return region_panel(body, "Now Running", snapshot, Region.RUNNING)


def render_past_events(snapshot: Snapshot, width: int) -> Panel:
    body = Text()
    for event in snapshot.past_events:
        body.append("-" * max(1, width) + "\n", style="dim")
        body.append(truncate(event.name, width) + "\n", style="bold")
        body.append(truncate(event.date, width) + "\n")
    if not snapshot.past_events:
        body.append("Loading..." if snapshot.is_refreshing else "No past events", style="dim")
    return region_panel(body, "Past Events", snapshot, Region.PAST)


def render_leaderboard(snapshot: Snapshot) -> Panel:
    table = Table(expand=True, show_header=False, box=None, pad_edge=False)
    table.add_column("Rank", ratio=15, style="dim")
    table.add_column("Team", ratio=40, no_wrap=True, overflow="ellipsis")
    table.add_column("Country", ratio=10)
    table.add_column("Points", ratio=35, justify="right")
    for offset, entry in enumerate(snapshot.leaderboard):
        style = "reverse" if offset == 0 and snapshot.focus == Region.LEADERBOARD else ""
        table.add_row(entry.rank, entry.team, entry.country, entry.points, style=style)
    if not snapshot.leaderboard:
        table.add_row("-", "Loading..." if snapshot.is_refreshing else "No teams", "-", "-")
    title = cursor_title("Leaderboard", snapshot.leaderboard_idx, len(snapshot.leaderboard))
    return region_panel(table, title, snapshot, Region.LEADERBOARD, align="left")


def render_writeups(snapshot: Snapshot, width: int) -> Panel:
    body = Text()
    for offset, writeup in enumerate(snapshot.writeups):
        style = "bold on green" if offset == 0 and snapshot.focus == Region.WRITEUPS else ""
        line = f"[{writeup.tags.strip()}] {writeup.event_name}"
        body.append(truncate(line, width) + "\n", style=style)
    if not snapshot.writeups:
        body.append("Loading..." if snapshot.is_refreshing else "No writeups", style="dim")
    title = cursor_title("Write Ups", snapshot.writeups_idx, len(snapshot.writeups))
    return region_panel(body, title, snapshot, Region.WRITEUPS)


def render_feed_timings(feed_seconds: dict[str, float]) -> str:
    if not feed_seconds:
        return "Feeds: -"
    return "Feeds: " + " | ".join(f"{label} {seconds:.1f}s" for label, seconds in feed_seconds.items())


def render_status_log(snapshot: Snapshot) -> Panel:
    lines = snapshot.status_log[-10:] or ["Waiting for first refresh..."]
    hint = "w/s focus | a/d move | r refresh | q quit"
    header = [hint, render_feed_timings(snapshot.feed_seconds), ""]
    return region_panel(Text("\n".join(header + lines)), "Status", snapshot, Region.OVERVIEW)


def render_warning_text(warnings: list[str], terminal_width: int) -> str:
    if not warnings:
        return "Warnings: none"
    text = " | ".join(warnings[:2])
    if len(warnings) > 2:
        text += f" | (+{len(warnings) - 2} more)"
    return "Warnings: " + truncate(text, max(40, terminal_width - 24))


def build_dashboard(
    snapshot: Snapshot,
    seconds_to_next_refresh: int,
    terminal_width: int,
    terminal_height: int,
) -> Panel:
    left_width = max(10, int(terminal_width * 0.3) - 4)
    right_width = max(10, int(terminal_width * 0.7) - 4)
    half_width = max(10, terminal_width // 2 - 4)

    refreshed = (
        snapshot.last_refresh_at.strftime("%Y-%m-%d %H:%M:%S UTC")
        if snapshot.last_refresh_at
        else "never"
    )
    status_line = (
        f"Refresh: {refreshed} | Next: {seconds_to_next_refresh}s | "
        f"Cycle: {snapshot.last_refresh_seconds:.1f}s | State: {snapshot.status_message} | "
        f"Focus: {snapshot.focus.name.lower()} | "
        f"{render_warning_text(snapshot.warnings, terminal_width)}"
    )
    footer = Text(truncate(status_line, max(60, terminal_width - 10)), style="cyan")

    left = Layout(name="left", ratio=3)
    left.split_column(
        Layout(render_running_events(snapshot, left_width), name="running"),
        Layout(render_leaderboard(snapshot), name="leaderboard"),
    )
    top = Layout(name="top", ratio=3)
    top.split_row(left, Layout(render_past_events(snapshot, right_width), name="past", ratio=7))

    bottom = Layout(name="bottom", ratio=1)
    bottom.split_row(
        Layout(render_writeups(snapshot, half_width), name="writeups"),
        Layout(render_status_log(snapshot), name="status"),
    )

    root = Layout(name="root")
    root.split_column(top, bottom)
    return Panel(
        root,
        title=APP_TITLE,
        title_align="left",
        border_style="bright_blue",
        subtitle=footer,
        subtitle_align="left",
        height=max(10, terminal_height - 1),
    )
