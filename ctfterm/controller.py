from __future__ import annotations

import logging
import os
import queue
import select
import sys
import termios
import threading
import tty

from .state import Action

logger = logging.getLogger(__name__)

KEY_ACTIONS: dict[str, Action] = {
    "q": Action.QUIT,
    "QUIT": Action.QUIT,
    "w": Action.FOCUS_NEXT,
    "UP": Action.FOCUS_NEXT,
    "TAB": Action.FOCUS_NEXT,
    "s": Action.FOCUS_PREVIOUS,
    "DOWN": Action.FOCUS_PREVIOUS,
    "SHTAB": Action.FOCUS_PREVIOUS,
    "d": Action.ADVANCE,
    "RIGHT": Action.ADVANCE,
    "a": Action.RETREAT,
    "LEFT": Action.RETREAT,
    "r": Action.REFRESH,
}

ESCAPE_SEQUENCES = {
    "[A": "UP",
    "[B": "DOWN",
    "[C": "RIGHT",
    "[D": "LEFT",
    "[Z": "SHTAB",
}


def key_to_action(key: str) -> Action | None:
    if len(key) == 1:
        key = key.lower()
    return KEY_ACTIONS.get(key)


def decode_key(key: str) -> str:
    if key == "\t":
        return "TAB"
    if key == "\x03":
        return "QUIT"
    return key


def _emit(action_queue: queue.Queue[Action], key: str) -> None:
    action = key_to_action(key)
    if action is not None:
        action_queue.put(action)


def _stdin_fd() -> int | None:
    try:
        return sys.stdin.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _read_line_chunk(fd: int | None) -> str | None:
    # Without a descriptor only a blocking readline is possible.
    if fd is None:
        return sys.stdin.readline()
    ready, _, _ = select.select([fd], [], [], 0.2)
    if not ready:
        return None
    return os.read(fd, 1024).decode("utf-8", errors="ignore")


def _line_input_worker(action_queue: queue.Queue[Action], stop_event: threading.Event) -> None:
    fd = _stdin_fd()
    while not stop_event.is_set():
        try:
            chunk = _read_line_chunk(fd)
        except (OSError, ValueError):
            if stop_event.wait(0.2):
                break
            continue
        if chunk is None:
            continue
        if chunk == "":
            if stop_event.wait(0.2):
                break
            continue
        for key in "".join(chunk.split()):
            _emit(action_queue, key)


def input_worker(action_queue: queue.Queue[Action], stop_event: threading.Event) -> None:
    if not sys.stdin.isatty():
        _line_input_worker(action_queue, stop_event)
        return

    try:
        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
    except (OSError, ValueError, termios.error):
        _line_input_worker(action_queue, stop_event)
        return

    try:
        tty.setcbreak(fd)
        while not stop_event.is_set():
            ready, _, _ = select.select([fd], [], [], 0.2)
            if not ready:
                continue
            data = os.read(fd, 1)
            if not data:
                continue
            key = data.decode("utf-8", errors="ignore")
            if not key:
                continue
            if key == "\x1b":
                sequence = ""
                while select.select([fd], [], [], 0.001)[0]:
                    sequence += os.read(fd, 1).decode("utf-8", errors="ignore")
                    if not sequence:
                        continue
                    if sequence[-1].isalpha() or sequence.endswith("~") or len(sequence) >= 6:
                        break
                named = ESCAPE_SEQUENCES.get(sequence)
                if named:
                    _emit(action_queue, named)
                continue
            _emit(action_queue, decode_key(key))
    finally:
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        except termios.error:
            logger.debug("could not restore terminal settings")


def drain_actions(action_queue: queue.Queue[Action]) -> list[Action]:
    actions: list[Action] = []
    while True:
        try:
            actions.append(action_queue.get_nowait())
        except queue.Empty:
            return actions
