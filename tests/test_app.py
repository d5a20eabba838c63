import io
import sys
import threading

import pytest
from rich.console import Console

from ctfterm.app import INPUT_THREAD_NAME, main, parse_args, run
from ctfterm.dashboard import build_dashboard, cursor_title, render_feed_timings, truncate
from ctfterm.errors import TransportError
from ctfterm.extract import FeedKind
from ctfterm.models import LeaderboardEntry, PastEvent, Writeup
from ctfterm.refresh import RefreshCoordinator
from ctfterm.state import Action, AppState, Region


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CTFTERM_BASE_URL", "CTFTERM_REFRESH_MINUTES", "CTFTERM_FETCH_TIMEOUT", "CTFTERM_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=140, height=40, color_system=None)


class ScriptedStdin:
    def __init__(self, script):
        self.script = list(script)

    def isatty(self):
        return False

    def fileno(self):
        raise io.UnsupportedOperation("fileno")

    def readline(self):
        if not self.script:
            return ""
        ready, line = self.script.pop(0)
        ready.wait(timeout=5)
        return line


def fake_coordinator(leaderboard_loader=None):
    return RefreshCoordinator(
        {
            FeedKind.RUNNING_EVENTS: lambda: ["Event A"],
            FeedKind.LEADERBOARD: leaderboard_loader or (lambda: [LeaderboardEntry("1", "TeamX", "USA", "1500")]),
            FeedKind.PAST_EVENTS: lambda: [PastEvent("Beta CTF", "15 Oct. — 17 Oct. 2023")],
            FeedKind.WRITEUPS: lambda: [Writeup("Alpha CTF", "heap-me", "pwn heap", "TeamX", "Read")],
        }
    )


class TestParseArgs:
    def test_defaults(self):
        config = parse_args([])
        assert config.base_url == "https://ctftime.org"
        assert config.refresh_minutes == 30
        assert config.fetch_timeout_seconds == 20
        assert config.scroll_ticks == 100
        assert config.log_level == "INFO"
        assert not config.once

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("CTFTERM_REFRESH_MINUTES", "5")
        monkeypatch.setenv("CTFTERM_BASE_URL", "http://mirror.local")
        config = parse_args([])
        assert config.refresh_minutes == 5
        assert config.base_url == "http://mirror.local"

    def test_flags_override(self):
        config = parse_args(["--refresh-minutes", "2", "--log-level", "debug", "--once"])
        assert config.refresh_minutes == 2
        assert config.log_level == "DEBUG"
        assert config.once

    @pytest.mark.parametrize(
        "argv",
        [
            ["--refresh-minutes", "0"],
            ["--fetch-timeout-seconds", "0"],
            ["--scroll-ticks", "0"],
            ["--marquee-ticks", "0"],
            ["--tick-seconds", "10"],
            ["--base-url", "ftp://ctftime.org"],
        ],
    )
    def test_invalid_values(self, argv):
        with pytest.raises(ValueError):
            parse_args(argv)

    def test_fractional_fetch_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("CTFTERM_FETCH_TIMEOUT", "1.5")
        assert parse_args([]).fetch_timeout_seconds == 1.5

    def test_bad_fetch_timeout_environment_value(self, monkeypatch):
        monkeypatch.setenv("CTFTERM_FETCH_TIMEOUT", "fast")
        with pytest.raises(ValueError, match="CTFTERM_FETCH_TIMEOUT"):
            parse_args([])

    def test_bad_environment_value(self, monkeypatch):
        monkeypatch.setenv("CTFTERM_REFRESH_MINUTES", "soon")
        with pytest.raises(ValueError):
            parse_args([])

    def test_main_reports_configuration_error(self):
        assert main(["--refresh-minutes", "0"]) == 2


class TestRunOnce:
    def test_prints_one_frame(self, console):
        config = parse_args(["--once"])
        assert run(config, console, coordinator=fake_coordinator()) == 0
        output = console.file.getvalue()
        assert "CTF>TERM" in output
        assert "TeamX" in output
        assert "Beta CTF" in output

    def test_failed_feed_shows_warning(self, console):
        def down():
            raise TransportError(FeedKind.LEADERBOARD, "timeout")

        config = parse_args(["--once"])
        assert run(config, console, coordinator=fake_coordinator(down)) == 0
        output = console.file.getvalue()
        assert "Leaderboard: timeout" in output
        assert "Beta CTF" in output


class TestRunLive:
    def test_batches_published_once_and_input_thread_joined(self, console, monkeypatch):
        published = []
        first_publish = threading.Event()
        second_publish = threading.Event()
        original_publish = AppState.publish

        def recording_publish(self, result):
            original_publish(self, result)
            published.append(result)
            (first_publish if len(published) == 1 else second_publish).set()

        monkeypatch.setattr(AppState, "publish", recording_publish)
        monkeypatch.setattr(sys, "stdin", ScriptedStdin([(first_publish, "r\n"), (second_publish, "q\n")]))

        leaderboard_calls = []

        def leaderboard():
            leaderboard_calls.append(1)
            return [LeaderboardEntry("1", "TeamX", "USA", "1500")]

        config = parse_args(["--tick-seconds", "0.01"])
        assert run(config, console, coordinator=fake_coordinator(leaderboard)) == 0

        assert len(published) == 2
        assert len(leaderboard_calls) == 2
        assert published[0].leaderboard[0].team == "TeamX"
        assert not any(
            thread.name == INPUT_THREAD_NAME and thread.is_alive() for thread in threading.enumerate()
        )

    def test_quit_before_first_batch(self, console, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.StringIO("q\n"))
        config = parse_args(["--tick-seconds", "0.01"])
        assert run(config, console, coordinator=fake_coordinator()) == 0
        assert not any(
            thread.name == INPUT_THREAD_NAME and thread.is_alive() for thread in threading.enumerate()
        )


class TestDashboard:
    def test_truncate(self):
        assert truncate("abcdef", 4) == "a..."
        assert truncate("abc", 4) == "abc"
        assert truncate("abc", 0) == ""

    def test_renders_loading_state(self, console):
        app_state = AppState()
        app_state.mark_refreshing()
        console.print(build_dashboard(app_state.snapshot(), 0, 140, 40))
        output = console.file.getvalue()
        assert "Loading..." in output
        assert "Now Running" in output

    def test_render_does_not_mutate_state(self, console):
        app_state = AppState()
        app_state.focus.focus = Region.WRITEUPS
        before = app_state.snapshot()
        console.print(build_dashboard(before, 10, 140, 40))
        assert app_state.snapshot() == before

    def test_cursor_shown_in_navigable_titles(self, console):
        assert cursor_title("Write Ups", 0, 0) == "Write Ups"
        app_state = AppState()
        app_state.writeups.replace(
            [Writeup(f"CTF {i}", f"task-{i}", "pwn", "TeamX", "Read") for i in range(3)]
        )
        app_state.focus.focus = Region.WRITEUPS
        app_state.apply(Action.ADVANCE)
        console.print(build_dashboard(app_state.snapshot(), 0, 140, 40))
        assert "Write Ups 2/3" in console.file.getvalue()

    def test_feed_timings(self):
        assert render_feed_timings({}) == "Feeds: -"
        assert render_feed_timings({"Leaderboard": 1.3, "Write Ups": 0.4}) == (
            "Feeds: Leaderboard 1.3s | Write Ups 0.4s"
        )
