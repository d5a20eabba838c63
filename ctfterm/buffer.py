from __future__ import annotations

from typing import Generic, Iterable, Iterator, TypeVar

T = TypeVar("T")


# idx counts navigation steps from the front; scroll rotates without moving it.
class RotatingBuffer(Generic[T]):
    def __init__(self, items: Iterable[T] | None = None) -> None:
        self.items: list[T] = list(items or [])
        self.idx = 0

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __repr__(self) -> str:
        return f"RotatingBuffer(items={self.items!r}, idx={self.idx})"

    def scroll(self) -> None:
        if not self.items:
            return
        self.items.append(self.items.pop(0))

    def move_forward(self) -> bool:
        if self.idx >= len(self.items) - 1:
            return False
        self.items.append(self.items.pop(0))
        self.idx += 1
        return True

    def move_backward(self) -> bool:
        if self.idx <= 0:
            return False
        self.items.insert(0, self.items.pop())
        self.idx -= 1
        return True

    def append(self, items: Iterable[T]) -> None:
        for item in items:
            self.items.append(item)

    def replace(self, items: Iterable[T]) -> None:
        self.items.clear()
        self.idx = 0
        self.append(items)

    def get(self, index: int) -> T:
        self._check_index(index)
        return self.items[index]

    def set(self, index: int, value: T) -> None:
        self._check_index(index)
        self.items[index] = value

    def rotate_text(self, index: int = 0) -> None:
        text = self.get(index)
        if not isinstance(text, str):
            raise TypeError(f"marquee needs a string, got {type(text).__name__}")
        if len(text) > 1:
            self.set(index, text[1:] + text[0])

    def snapshot(self) -> list[T]:
        return list(self.items)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise IndexError(f"index {index} out of range for buffer of {len(self.items)}")
