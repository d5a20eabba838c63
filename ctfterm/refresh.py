from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import requests

from .errors import ExtractError
from .extract import DEFAULT_BASE_URL, FeedKind, load_feed
from .models import LeaderboardEntry, PastEvent, RunningEvent, Writeup

logger = logging.getLogger(__name__)

FeedLoader = Callable[[], list[Any]]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FeedResult:
    kind: FeedKind
    records: list[Any]
    error: str = ""
    elapsed_seconds: float = 0.0


@dataclass
class RefreshResult:
    running_events: list[RunningEvent]
    leaderboard: list[LeaderboardEntry]
    past_events: list[PastEvent]
    writeups: list[Writeup]
    errors: list[str] = field(default_factory=list)
    started: datetime = field(default_factory=now_utc)
    elapsed_seconds: float = 0.0
    feed_seconds: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_feeds(cls, feeds: dict[FeedKind, FeedResult], started: datetime) -> RefreshResult:
        def records(kind: FeedKind) -> list[Any]:
            result = feeds.get(kind)
            return list(result.records) if result else []

        return cls(
            running_events=records(FeedKind.RUNNING_EVENTS),
            leaderboard=records(FeedKind.LEADERBOARD),
            past_events=records(FeedKind.PAST_EVENTS),
            writeups=records(FeedKind.WRITEUPS),
            errors=[result.error for result in feeds.values() if result.error],
            started=started,
            elapsed_seconds=max((now_utc() - started).total_seconds(), 0.0),
            feed_seconds={result.kind.label: result.elapsed_seconds for result in feeds.values()},
        )


def make_http_loaders(
    base_url: str = DEFAULT_BASE_URL,
    timeout_seconds: float = 20,
    session: requests.Session | None = None,
) -> dict[FeedKind, FeedLoader]:
    def loader(kind: FeedKind) -> FeedLoader:
        return lambda: load_feed(kind, session=session, timeout=timeout_seconds, base_url=base_url)

    return {kind: loader(kind) for kind in FeedKind}


def run_loader(kind: FeedKind, loader: FeedLoader) -> FeedResult:
    started = time.monotonic()
    try:
        records = loader()
    except ExtractError as exc:
        logger.warning("%s", exc)
        return FeedResult(kind, [], str(exc), time.monotonic() - started)
    except Exception as exc:
        logger.exception("%s loader crashed", kind.label)
        return FeedResult(kind, [], f"{kind.label}: unexpected error ({exc})", time.monotonic() - started)
    return FeedResult(kind, list(records), "", time.monotonic() - started)


class RefreshCoordinator:
    def __init__(
        self,
        loaders: dict[FeedKind, FeedLoader],
        max_workers: int | None = None,
    ) -> None:
        self.loaders = dict(loaders)
        self.expected = len(self.loaders)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or max(1, self.expected),
            thread_name_prefix="feed",
        )
        self._lock = threading.Lock()
        self._completed = 0
        self._needs_load = False
        self._done = threading.Event()
        self._futures: dict[FeedKind, Future[FeedResult]] = {}
        self._started = now_utc()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._needs_load

    def start(self) -> bool:
        with self._lock:
            if self._needs_load:
                return False
            self._completed = 0
            self._needs_load = True
            self._done.clear()
            self._started = now_utc()
            self._futures = {}

        if not self.loaders:
            self._done.set()
            return True

        logger.info("refreshing %d feeds", self.expected)
        for kind, loader in self.loaders.items():
            future = self._executor.submit(run_loader, kind, loader)
            with self._lock:
                self._futures[kind] = future
            future.add_done_callback(self._on_feed_done)
        return True

    def _on_feed_done(self, future: Future[FeedResult]) -> None:
        with self._lock:
            self._completed += 1
            if self._completed >= self.expected:
                self._done.set()

    def collect(self) -> RefreshResult | None:
        if not self._done.is_set():
            return None
        with self._lock:
            if not self._needs_load:
                return None
            self._needs_load = False
            futures = dict(self._futures)
            started = self._started

        feeds = {kind: future.result() for kind, future in futures.items()}
        result = RefreshResult.from_feeds(feeds, started)
        logger.info(
            "refresh finished in %.1fs with %d errors",
            result.elapsed_seconds,
            len(result.errors),
        )
        return result

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def refresh_all(self, timeout: float | None = None) -> RefreshResult | None:
        self.start()
        self.wait(timeout)
        return self.collect()

    def shutdown(self) -> None:
        # Running fetches are left to finish on their own.
        self._executor.shutdown(wait=False)


class RefreshSchedule:
    def __init__(self, interval: timedelta) -> None:
        self.interval = interval
        self.next_run_at: datetime | None = None

    def due(self, now: datetime) -> bool:
        return self.next_run_at is None or now >= self.next_run_at

    def mark(self, now: datetime) -> None:
        self.next_run_at = now + self.interval

    def seconds_left(self, now: datetime) -> int:
        if self.next_run_at is None:
            return 0
        return max(0, int((self.next_run_at - now).total_seconds()))
