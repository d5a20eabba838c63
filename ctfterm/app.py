from __future__ import annotations

import argparse
import logging
import os
import queue
import sys
import threading
import time
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live

from .controller import drain_actions, input_worker
from .dashboard import build_dashboard
from .extract import DEFAULT_BASE_URL
from .refresh import RefreshCoordinator, RefreshSchedule, make_http_loaders, now_utc
from .state import Action, AppState, AutoScroller

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
INPUT_THREAD_NAME = "ctfterm-input"


@dataclass
class AppConfig:
    base_url: str
    refresh_minutes: int
    fetch_timeout_seconds: float
    tick_seconds: float
    scroll_ticks: int
    marquee_ticks: int
    log_file: str
    log_level: str
    once: bool


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def parse_args(argv: list[str]) -> AppConfig:
    parser = argparse.ArgumentParser(
        description="Live terminal dashboard for CTFtime events, writeups and rankings."
    )
    parser.add_argument("--base-url", default=os.getenv("CTFTERM_BASE_URL", DEFAULT_BASE_URL))
    parser.add_argument(
        "--refresh-minutes",
        type=int,
        default=env_int("CTFTERM_REFRESH_MINUTES", 30),
    )
    parser.add_argument(
        "--fetch-timeout-seconds",
        type=float,
        default=env_float("CTFTERM_FETCH_TIMEOUT", 20.0),
    )
    parser.add_argument("--tick-seconds", type=float, default=0.1)
    parser.add_argument(
        "--scroll-ticks",
        type=int,
        default=100,
        help="Render ticks between past-event scroll steps.",
    )
    parser.add_argument(
        "--marquee-ticks",
        type=int,
        default=3,
        help="Render ticks between marquee steps of the first running event.",
    )
    parser.add_argument("--log-file", default=os.getenv("CTFTERM_LOG_FILE", ""))
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default="INFO")
    parser.add_argument("--once", action="store_true")

    args = parser.parse_args(argv)

    if args.refresh_minutes < 1:
        raise ValueError("--refresh-minutes must be >= 1")
    if args.fetch_timeout_seconds <= 0:
        raise ValueError("--fetch-timeout-seconds must be > 0")
    if not 0.01 <= args.tick_seconds <= 5:
        raise ValueError("--tick-seconds must be between 0.01 and 5")
    if args.scroll_ticks < 1:
        raise ValueError("--scroll-ticks must be >= 1")
    if args.marquee_ticks < 1:
        raise ValueError("--marquee-ticks must be >= 1")
    if not args.base_url.startswith(("http://", "https://")):
        raise ValueError("--base-url must be an http(s) URL")

    return AppConfig(
        base_url=args.base_url,
        refresh_minutes=args.refresh_minutes,
        fetch_timeout_seconds=args.fetch_timeout_seconds,
        tick_seconds=args.tick_seconds,
        scroll_ticks=args.scroll_ticks,
        marquee_ticks=args.marquee_ticks,
        log_file=args.log_file,
        log_level=args.log_level,
        once=args.once,
    )


def configure_logging(log_file: str, level: str) -> None:
    # A stream handler would draw over the live screen.
    handler: logging.Handler = logging.FileHandler(log_file) if log_file else logging.NullHandler()
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, handlers=[handler])


def make_coordinator(config: AppConfig) -> RefreshCoordinator:
    loaders = make_http_loaders(
        base_url=config.base_url,
        timeout_seconds=config.fetch_timeout_seconds,
    )
    return RefreshCoordinator(loaders)


def start_refresh(coordinator: RefreshCoordinator, app_state: AppState) -> bool:
    if not coordinator.start():
        app_state.log("Refresh already in progress.")
        return False
    app_state.mark_refreshing()
    return True


def run_once(config: AppConfig, console: Console, coordinator: RefreshCoordinator) -> int:
    app_state = AppState()
    app_state.mark_refreshing()
    result = coordinator.refresh_all(timeout=config.fetch_timeout_seconds * 2)
    if result is None:
        console.print("[red]Refresh did not finish in time.[/red]")
        return 1
    app_state.publish(result)
    console.print(
        build_dashboard(
            app_state.snapshot(),
            seconds_to_next_refresh=0,
            terminal_width=console.size.width,
            terminal_height=console.size.height,
        )
    )
    return 0


def run(
    config: AppConfig,
    console: Console,
    coordinator: RefreshCoordinator | None = None,
) -> int:
    coordinator = coordinator or make_coordinator(config)
    if config.once:
        try:
            return run_once(config, console, coordinator)
        finally:
            coordinator.shutdown()

    app_state = AppState()
    app_state.log("w/s change focus, a/d move the focused list, r refreshes, q quits.")
    schedule = RefreshSchedule(timedelta(minutes=config.refresh_minutes))
    scroller = AutoScroller(config.scroll_ticks)
    marquee = AutoScroller(config.marquee_ticks)

    stop_event = threading.Event()
    action_queue: queue.Queue[Action] = queue.Queue()
    input_thread = threading.Thread(
        target=input_worker,
        args=(action_queue, stop_event),
        name=INPUT_THREAD_NAME,
        daemon=True,
    )
    input_thread.start()

    with Live(
        build_dashboard(
            app_state.snapshot(),
            seconds_to_next_refresh=0,
            terminal_width=console.size.width,
            terminal_height=console.size.height,
        ),
        console=console,
        auto_refresh=False,
        screen=True,
        vertical_overflow="crop",
    ) as live:
        try:
            while True:
                exit_requested = False
                for action in drain_actions(action_queue):
                    if action == Action.REFRESH:
                        if start_refresh(coordinator, app_state):
                            schedule.mark(now_utc())
                        continue
                    if app_state.apply(action):
                        exit_requested = True
                        break
                if exit_requested:
                    return 0

                if scroller.tick():
                    app_state.auto_scroll()
                if marquee.tick():
                    app_state.marquee()

                now = now_utc()
                live.update(
                    build_dashboard(
                        app_state.snapshot(),
                        seconds_to_next_refresh=schedule.seconds_left(now),
                        terminal_width=console.size.width,
                        terminal_height=console.size.height,
                    ),
                    refresh=True,
                )

                result = coordinator.collect()
                if result is not None:
                    app_state.publish(result)

                if schedule.due(now) and not coordinator.in_flight:
                    start_refresh(coordinator, app_state)
                    schedule.mark(now)

                time.sleep(config.tick_seconds)
        finally:
            stop_event.set()
            input_thread.join(timeout=2)
            coordinator.shutdown()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    console = Console()
    try:
        config = parse_args(argv if argv is not None else sys.argv[1:])
    except ValueError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2

    configure_logging(config.log_file, config.log_level)
    try:
        return run(config, console)
    except KeyboardInterrupt:
        console.print("\n[bold]Stopped.[/bold]")
        return 0
