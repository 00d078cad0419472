"""Tests for user-facing output."""

import io
import json
from unittest.mock import patch

from rich.console import Console

from nodessh.ui import (
    UI,
    JsonOutputReporter,
    NullOutputReporter,
    OutputEvent,
    TextOutputReporter,
    create_output_reporter,
)


def text_reporter():
    output = io.StringIO()
    return TextOutputReporter(Console(file=output, width=200, no_color=True)), output


class TestUI:
    """Tests for the diagnostic sink."""

    def test_fatal(self):
        output = io.StringIO()
        UI(Console(file=output, no_color=True)).fatal("2 nodes found")
        assert output.getvalue() == "FATAL: 2 nodes found\n"

    def test_warn(self):
        output = io.StringIO()
        UI(Console(file=output, no_color=True)).warn("careful")
        assert output.getvalue() == "WARNING: careful\n"

    def test_prompt_password(self):
        with patch("nodessh.ui.click.prompt", return_value="secret") as prompt:
            assert UI().prompt_password() == "secret"
        assert prompt.call_args.kwargs["hide_input"] is True


class TestTextOutputReporter:
    """Tests for TextOutputReporter."""

    def test_lines_prefixed_with_padded_host(self):
        """Test host names are padded to the longest one."""
        reporter, output = text_reporter()
        reporter.on_session_start(["a.example.org", "longer.example.org"])
        reporter.on_host_data("a.example.org", "up 3 days\r\n")
        assert output.getvalue() == "a.example.org      up 3 days\n"

    def test_success_is_quiet(self):
        reporter, output = text_reporter()
        reporter.on_session_start(["web01"])
        reporter.on_host_complete("web01", 0, 0.1)
        reporter.on_execution_complete(1, 0, 0, 0.1)
        assert output.getvalue() == ""

    def test_failure_reported(self):
        reporter, output = text_reporter()
        reporter.on_session_start(["web01"])
        reporter.on_host_complete("web01", 3, 0.1)
        reporter.on_host_error("web01", "channel closed")
        assert "exited with status 3" in output.getvalue()
        assert "Command failed: channel closed" in output.getvalue()
        assert "Failed to connect" not in output.getvalue()

    def test_connect_error_padded_like_output(self):
        reporter, output = text_reporter()
        reporter.on_session_start(["db", "web01.example.org"])
        reporter.on_connect_error("db", "Connection refused")
        assert output.getvalue() == "db                Failed to connect: Connection refused\n"

    def test_host_colors_stable(self):
        reporter, _ = text_reporter()
        reporter.on_session_start(["a", "b"])
        assert reporter._style("a") != reporter._style("b")
        assert reporter._style("a") == reporter._style("a")


class TestJsonOutputReporter:
    """Tests for JsonOutputReporter."""

    def test_events(self):
        output = io.StringIO()
        reporter = JsonOutputReporter(output)
        reporter.on_session_start(["web01", "db01"])
        reporter.on_connect_error("db01", "Connection refused")
        reporter.on_host_data("web01", "hello\n")
        reporter.on_host_complete("web01", 1, 0.12345)
        reporter.on_execution_complete(1, 1, 1, 0.5)

        events = [json.loads(line) for line in output.getvalue().splitlines()]
        assert [e["event"] for e in events] == [
            "session_start", "connect_error", "host_data", "host_complete",
            "execution_complete",
        ]
        assert events[0]["hosts"] == ["web01", "db01"]
        assert events[1]["host"] == "db01"
        assert events[1]["error"] == "Connection refused"
        assert events[2]["host"] == "web01"
        assert events[2]["data"] == "hello"
        assert events[3]["exit_status"] == 1
        assert events[3]["duration"] == 0.123
        assert events[4]["exit_code"] == 1

    def test_output_event_to_dict(self):
        event = OutputEvent("host_error", "web01", "2024-01-01T00:00:00", {"error": "x"})
        assert event.to_dict() == {
            "event": "host_error",
            "host": "web01",
            "timestamp": "2024-01-01T00:00:00",
            "error": "x",
        }


def test_create_output_reporter():
    assert isinstance(create_output_reporter("json"), JsonOutputReporter)
    assert isinstance(create_output_reporter("none"), NullOutputReporter)
    assert isinstance(create_output_reporter("text", io.StringIO()), TextOutputReporter)
