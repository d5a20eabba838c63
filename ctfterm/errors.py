from __future__ import annotations

from typing import Any


class CtfTermError(Exception):
    pass


class ExtractError(CtfTermError):
    def __init__(self, kind: Any, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        label = getattr(self.kind, "label", self.kind)
        return f"{label}: {self.args[0]}"


class TransportError(ExtractError):
    pass


class ParseError(ExtractError):
    pass


class ShapeError(CtfTermError):
    def __init__(self, expected: int, cells: list[str]) -> None:
        super().__init__(f"row has {len(cells)} fields, expected {expected}")
        self.expected = expected
        self.cells = cells
