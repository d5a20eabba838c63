from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

from .buffer import RotatingBuffer
from .extract import NO_RUNNING_EVENTS
from .models import LeaderboardEntry, PastEvent, RunningEvent, Writeup
from .refresh import RefreshResult, now_utc

logger = logging.getLogger(__name__)

STATUS_LOG_MAX = 12
PAST_EVENTS_SCROLL_MIN = 10


class Region(IntEnum):
    OVERVIEW = 0
    RUNNING = 1
    PAST = 2
    WRITEUPS = 3
    LEADERBOARD = 4


REGION_COUNT = len(Region)


class Action(Enum):
    QUIT = "quit"
    FOCUS_NEXT = "focus_next"
    FOCUS_PREVIOUS = "focus_previous"
    ADVANCE = "advance"
    RETREAT = "retreat"
    REFRESH = "refresh"


@dataclass
class FocusState:
    focus: int = Region.OVERVIEW

    def focus_next(self) -> int:
        self.focus = (self.focus + 1) % REGION_COUNT
        return self.focus

    def focus_previous(self) -> int:
        if self.focus < 1:
            self.focus = REGION_COUNT - 1
        else:
            self.focus -= 1
        return self.focus

    @property
    def region(self) -> Region:
        return Region(self.focus)


class AutoScroller:
    def __init__(self, interval: int) -> None:
        if interval < 1:
            raise ValueError("auto-scroll interval must be >= 1 tick")
        self.interval = interval
        self.counter = interval

    def tick(self) -> bool:
        if self.counter <= 0:
            self.counter = self.interval
            return True
        self.counter -= 1
        return False


@dataclass
class Snapshot:
    focus: Region
    running_events: list[RunningEvent]
    past_events: list[PastEvent]
    writeups: list[Writeup]
    leaderboard: list[LeaderboardEntry]
    writeups_idx: int
    leaderboard_idx: int
    status_message: str
    status_log: list[str]
    warnings: list[str]
    last_refresh_at: datetime | None
    last_refresh_seconds: float
    is_refreshing: bool
    feed_seconds: dict[str, float]


@dataclass
class AppState:
    running_events: RotatingBuffer[RunningEvent] = field(default_factory=RotatingBuffer)
    past_events: RotatingBuffer[PastEvent] = field(default_factory=RotatingBuffer)
    writeups: RotatingBuffer[Writeup] = field(default_factory=RotatingBuffer)
    leaderboard: RotatingBuffer[LeaderboardEntry] = field(default_factory=RotatingBuffer)
    focus: FocusState = field(default_factory=FocusState)
    status_message: str = "Starting first refresh..."
    status_log: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    last_refresh_at: datetime | None = None
    last_refresh_seconds: float = 0.0
    is_refreshing: bool = False
    feed_seconds: dict[str, float] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def log(self, message: str) -> None:
        with self.lock:
            self._log(message)

    def _log(self, message: str) -> None:
        stamp = now_utc().strftime("%H:%M:%S")
        self.status_log.append(f"{stamp} {message}")
        if len(self.status_log) > STATUS_LOG_MAX:
            del self.status_log[: len(self.status_log) - STATUS_LOG_MAX]
        logger.info(message)

    def navigable_buffer(self) -> RotatingBuffer | None:
        region = self.focus.region
        if region == Region.WRITEUPS:
            return self.writeups
        if region == Region.LEADERBOARD:
            return self.leaderboard
        return None

    def apply(self, action: Action) -> bool:
        with self.lock:
            if action == Action.QUIT:
                self._log("Quit requested.")
                return True
            if action == Action.FOCUS_NEXT:
                self.focus.focus_next()
            elif action == Action.FOCUS_PREVIOUS:
                self.focus.focus_previous()
            elif action == Action.ADVANCE:
                buffer = self.navigable_buffer()
                if buffer is not None:
                    buffer.move_forward()
            elif action == Action.RETREAT:
                buffer = self.navigable_buffer()
                if buffer is not None:
                    buffer.move_backward()
            return False

    def auto_scroll(self) -> None:
        with self.lock:
            if len(self.past_events) > PAST_EVENTS_SCROLL_MIN:
                self.past_events.scroll()

    def marquee(self) -> None:
        with self.lock:
            if len(self.running_events) > 0 and self.running_events.items != [NO_RUNNING_EVENTS]:
                self.running_events.rotate_text(0)

    def mark_refreshing(self) -> None:
        with self.lock:
            self.is_refreshing = True
            self.status_message = "Refreshing feeds..."
            self._log("Refresh started.")

    def publish(self, result: RefreshResult) -> None:
        with self.lock:
            self.running_events.replace(result.running_events)
            self.past_events.replace(result.past_events)
            self.writeups.replace(result.writeups)
            self.leaderboard.replace(result.leaderboard)
            self.warnings = list(result.errors)
            self.last_refresh_at = result.started
            self.last_refresh_seconds = result.elapsed_seconds
            self.feed_seconds = dict(result.feed_seconds)
            self.is_refreshing = False
            self.status_message = "Idle"
            for error in result.errors:
                self._log(f"Feed failed: {error}")
            self._log(
                f"Refreshed in {result.elapsed_seconds:.1f}s: "
                f"{len(result.running_events)} running, {len(result.past_events)} past, "
                f"{len(result.writeups)} writeups, {len(result.leaderboard)} teams"
            )

    def snapshot(self) -> Snapshot:
        with self.lock:
            return Snapshot(
                focus=self.focus.region,
                running_events=self.running_events.snapshot(),
                past_events=self.past_events.snapshot(),
                writeups=self.writeups.snapshot(),
                leaderboard=self.leaderboard.snapshot(),
                writeups_idx=self.writeups.idx,
                leaderboard_idx=self.leaderboard.idx,
                status_message=self.status_message,
                status_log=list(self.status_log),
                warnings=list(self.warnings),
                last_refresh_at=self.last_refresh_at,
                last_refresh_seconds=self.last_refresh_seconds,
                is_refreshing=self.is_refreshing,
                feed_seconds=dict(self.feed_seconds),
            )
