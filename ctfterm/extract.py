from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable

import feedparser
import requests
from bs4 import BeautifulSoup

from .errors import ParseError, ShapeError, TransportError
from .models import LeaderboardEntry, PastEvent, RunningEvent, Writeup

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://ctftime.org"
USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0 Safari/537.36 ctfterm"
)

DATE_RANGE_SEPARATOR = " — "
DATE_SUFFIX_LENGTH = 11
WRITEUP_TAGS_INDEX = 2
PAST_EVENT_CELLS = 2
NO_RUNNING_EVENTS = "None"
DOUBLE_NEWLINE = re.compile(r"\n{2,}")


class FeedKind(Enum):
    PAST_EVENTS = ("past_events", "Past Events", "/event/list/past")
    WRITEUPS = ("writeups", "Write Ups", "/writeups")
    LEADERBOARD = ("leaderboard", "Leaderboard", "/stats/")
    RUNNING_EVENTS = ("running_events", "Now Running", "/event/list/running/rss/")

    def __init__(self, key: str, label: str, path: str) -> None:
        self.key = key
        self.label = label
        self.path = path

    def url(self, base_url: str = DEFAULT_BASE_URL) -> str:
        return base_url.rstrip("/") + self.path


def clean_event_date(text: str) -> str:
    # Tuned to "15 Oct., 08:00 UTC — 17 Oct. 2023, 08:00 UTC": drops the start
    # time, then the 11 characters of the end time (", 08:00 UTC").
    comma_idx = text.find(",")
    dash_idx = text.find(DATE_RANGE_SEPARATOR)
    if comma_idx != -1 and dash_idx != -1 and comma_idx <= dash_idx:
        text = text[:comma_idx] + text[dash_idx:]

    comma_idx = text.find(",")
    if comma_idx != -1:
        text = text[:comma_idx] + text[comma_idx + DATE_SUFFIX_LENGTH:]
    return text


def _parse_html(kind: FeedKind, raw: str | bytes) -> BeautifulSoup:
    try:
        return BeautifulSoup(raw, "html.parser")
    except Exception as exc:
        raise ParseError(kind, f"unparseable markup ({exc})") from exc


def _cell_fragments(cell: Any) -> list[str]:
    return [str(fragment) for fragment in cell.strings]


def extract_past_events(raw: str | bytes) -> list[list[str]]:
    soup = _parse_html(FeedKind.PAST_EVENTS, raw)
    rows: list[list[str]] = []
    for tr in soup.find_all("tr"):
        row: list[str] = []
        for position, td in enumerate(tr.find_all("td")):
            if position >= PAST_EVENT_CELLS:
                break
            fragments = _cell_fragments(td)
            text = fragments[0] if fragments else ""
            if position > 0:
                text = clean_event_date(text)
            row.append(text)
        rows.append(row)
    return rows


def join_tag_fragments(fragments: list[str]) -> str:
    # Whitespace-only fragments sit between tag elements.
    joined = "".join(
        " " if "\n\n" in fragment or not fragment.strip() else fragment
        for fragment in fragments
    )
    return DOUBLE_NEWLINE.sub(" ", joined)


def extract_writeups(raw: str | bytes) -> list[list[str]]:
    soup = _parse_html(FeedKind.WRITEUPS, raw)
    rows: list[list[str]] = []
    for tr in soup.find_all("tr"):
        row: list[str] = []
        for td in tr.find_all("td"):
            fragments = _cell_fragments(td)
            if not fragments:
                continue
            if len(row) == WRITEUP_TAGS_INDEX:
                row.append(join_tag_fragments(fragments))
            else:
                row.append(fragments[0])
        if row:
            rows.append(row)
    return rows


def extract_leaderboard(raw: str | bytes) -> list[list[str]]:
    soup = _parse_html(FeedKind.LEADERBOARD, raw)
    rows: list[list[str]] = []
    for tr in soup.find_all("tr"):
        row = [fragments[0] for fragments in map(_cell_fragments, tr.find_all("td")) if fragments]
        if row:
            rows.append(row)
    return rows


def extract_running_events(raw: str | bytes) -> list[str]:
    # Bytes, so feedparser never mistakes the document for a URL or path.
    parsed = feedparser.parse(raw.encode("utf-8") if isinstance(raw, str) else raw)
    feed_title = parsed.feed.get("title")
    if parsed.bozo and not parsed.entries and feed_title is None:
        reason = getattr(parsed, "bozo_exception", None) or "no channel found"
        raise ParseError(FeedKind.RUNNING_EVENTS, f"unparseable RSS ({reason})")

    # Row 0 is always the channel's own title, even when the channel has none.
    titles = [feed_title or ""]
    titles.extend(entry.get("title", "") for entry in parsed.entries)
    logger.debug("running events feed carries %d entries", len(parsed.entries))
    return titles


EXTRACTORS: dict[FeedKind, Callable[[str | bytes], list[Any]]] = {
    FeedKind.PAST_EVENTS: extract_past_events,
    FeedKind.WRITEUPS: extract_writeups,
    FeedKind.LEADERBOARD: extract_leaderboard,
    FeedKind.RUNNING_EVENTS: extract_running_events,
}


def extract(kind: FeedKind, raw: str | bytes) -> list[Any]:
    return EXTRACTORS[kind](raw)


def _typed_rows(rows: list[list[str]], factory: Callable[[list[str]], Any]) -> list[Any]:
    records = []
    for row in rows:
        try:
            records.append(factory(row))
        except ShapeError as exc:
            logger.debug(
                "dropping row with %d of %d fields: %r", len(exc.cells), exc.expected, exc.cells
            )
    return records


def to_past_events(rows: list[list[str]]) -> list[PastEvent]:
    return _typed_rows(rows, PastEvent.from_row)


def to_leaderboard(rows: list[list[str]]) -> list[LeaderboardEntry]:
    return _typed_rows(rows, LeaderboardEntry.from_row)


def to_writeups(rows: list[list[str]]) -> list[Writeup]:
    return _typed_rows(rows, Writeup.from_row)


def to_running_events(titles: list[str]) -> list[RunningEvent]:
    events = list(titles[1:])
    if not events:
        events.append(NO_RUNNING_EVENTS)
    return events


CONVERTERS: dict[FeedKind, Callable[[list[Any]], list[Any]]] = {
    FeedKind.PAST_EVENTS: to_past_events,
    FeedKind.WRITEUPS: to_writeups,
    FeedKind.LEADERBOARD: to_leaderboard,
    FeedKind.RUNNING_EVENTS: to_running_events,
}


def fetch_raw(
    kind: FeedKind,
    session: requests.Session | None = None,
    timeout: float = 20,
    base_url: str = DEFAULT_BASE_URL,
) -> str:
    url = kind.url(base_url)
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise TransportError(kind, f"{url} unavailable ({exc})") from exc
    return response.text


def load_feed(
    kind: FeedKind,
    session: requests.Session | None = None,
    timeout: float = 20,
    base_url: str = DEFAULT_BASE_URL,
) -> list[Any]:
    raw = fetch_raw(kind, session=session, timeout=timeout, base_url=base_url)
    records = CONVERTERS[kind](extract(kind, raw))
    logger.info("%s: %d records", kind.label, len(records))
    return records
