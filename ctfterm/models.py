from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .errors import ShapeError

RunningEvent = str


def _require(cells: Sequence[str], count: int) -> list[str]:
    if len(cells) < count:
        raise ShapeError(count, list(cells))
    return [str(cell) for cell in cells[:count]]


@dataclass(frozen=True)
class PastEvent:
    name: str
    date: str

    @classmethod
    def from_row(cls, cells: Sequence[str]) -> PastEvent:
        name, date = _require(cells, 2)
        return cls(name=name, date=date)


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: str
    team: str
    country: str
    points: str

    @classmethod
    def from_row(cls, cells: Sequence[str]) -> LeaderboardEntry:
        # Source column order is rank, team, points, country.
        rank, team, points, country = _require(cells, 4)
        return cls(rank=rank, team=team, country=country, points=points)


@dataclass(frozen=True)
class Writeup:
    title: str
    event_name: str
    tags: str
    link: str
    extra: str

    @classmethod
    def from_row(cls, cells: Sequence[str]) -> Writeup:
        title, event_name, tags, link, extra = _require(cells, 5)
        return cls(title=title, event_name=event_name, tags=tags, link=link, extra=extra)
