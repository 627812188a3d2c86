"""Tests for the ExceptionSanitizer and trace filtering."""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from typing import Any

import pytest

from event_observers.core import sanitizer as sanitizer_module
from event_observers.core.exceptions import ValidationError
from event_observers.core.sanitizer import ExceptionSanitizer, format_failure, qualified_name, trim_stack


@dataclass(frozen=True)
class Ping:
    pass


class _Sink:
    def __init__(self) -> None:
        self.reports: list[tuple[int, str]] = []

    def __call__(self, level: int, message: str) -> None:
        self.reports.append((level, message))


def exploding(_event: Any) -> None:
    msg = "All your base are belong to us"
    raise RuntimeError(msg)


class TestInvoke:
    """Tests for calling callbacks through the sanitizer."""

    def test_passes_event_and_extra_args(self) -> None:
        """The callback receives the event followed by extra positional args."""
        received: list[tuple[Any, ...]] = []
        ExceptionSanitizer().invoke(lambda *args: received.append(args), Ping(), 2.5)

        assert received == [(Ping(), 2.5)]

    def test_none_callback_fails_fast(self) -> None:
        """A missing callback is a programming error."""
        with pytest.raises(ValidationError, match="callback"):
            ExceptionSanitizer().invoke(None, Ping())  # type: ignore[arg-type]

    def test_none_event_fails_fast(self) -> None:
        """A missing event is a programming error."""
        with pytest.raises(ValidationError, match="event"):
            ExceptionSanitizer().invoke(lambda _e: None, None)

    def test_failure_is_swallowed_and_reported_once(self) -> None:
        """A raising callback produces exactly one report and no exception."""
        sink = _Sink()
        sanitizer = ExceptionSanitizer(sink=sink)

        sanitizer.invoke(exploding, Ping(), event_type=Ping)

        assert len(sink.reports) == 1
        level, message = sink.reports[0]
        assert level == logging.INFO
        assert f"whilst handling {qualified_name(Ping)}" in message
        assert "RuntimeError: All your base are belong to us" in message
        assert sanitizer.failures == 1

    def test_report_tag_defaults_to_runtime_type(self) -> None:
        """Without ``event_type`` the report names the event's own class."""
        sink = _Sink()
        ExceptionSanitizer(sink=sink).invoke(exploding, Ping())

        assert qualified_name(Ping) in sink.reports[0][1]

    def test_custom_level_is_used(self) -> None:
        """The configured severity is attached to each report."""
        sink = _Sink()
        ExceptionSanitizer(sink=sink, level=logging.WARNING).invoke(exploding, Ping())

        assert sink.reports[0][0] == logging.WARNING

    def test_default_sink_logs_at_info(self, caplog: pytest.LogCaptureFixture) -> None:
        """The default sink writes to the sanitizer logger."""
        caplog.set_level(logging.INFO, logger=sanitizer_module.__name__)

        ExceptionSanitizer().invoke(exploding, Ping())

        records = [r for r in caplog.records if r.name == sanitizer_module.__name__]
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert "intercepted" in records[0].getMessage()

    def test_failing_sink_is_contained(self, caplog: pytest.LogCaptureFixture) -> None:
        """A sink that raises is logged and nothing escapes."""

        def broken_sink(_level: int, _message: str) -> None:
            msg = "disk full"
            raise OSError(msg)

        ExceptionSanitizer(sink=broken_sink).invoke(exploding, Ping())

        assert "Diagnostic sink" in caplog.text

    def test_base_exceptions_propagate(self) -> None:
        """Interpreter-level exits are not intercepted."""

        def leave(_event: Any) -> None:
            raise SystemExit(3)

        with pytest.raises(SystemExit):
            ExceptionSanitizer(sink=_Sink()).invoke(leave, Ping())


class TestTraceFiltering:
    """Tests for removing internal frames from reports."""

    def test_report_hides_sanitizer_frames(self) -> None:
        """The reported trace keeps user frames and drops ``invoke``."""
        sink = _Sink()
        ExceptionSanitizer(sink=sink).invoke(exploding, Ping())

        message = sink.reports[0][1]
        assert "in exploding" in message
        assert "in test_report_hides_sanitizer_frames" in message
        assert ", in invoke\n" not in message

    def test_trim_stack_drops_internal_files(self) -> None:
        """Frames whose file belongs to an internal module are removed."""
        frames = [
            traceback.FrameSummary("/srv/host/bus.py", 10, "publish", lookup_line=False),
            traceback.FrameSummary(sanitizer_module.__file__, 20, "invoke", lookup_line=False),
            traceback.FrameSummary("/srv/plugin/handlers.py", 30, "on_ping", lookup_line=False),
        ]

        trimmed = trim_stack(frames)

        assert [frame.name for frame in trimmed] == ["publish", "on_ping"]

    def test_trim_stack_ignores_unloaded_modules(self) -> None:
        """Module names that are not imported hide nothing."""
        frames = [traceback.FrameSummary("/srv/a.py", 1, "a", lookup_line=False)]

        assert len(trim_stack(frames, modules=("not.a.loaded.module",))) == 1

    def test_format_failure_prepends_outer_frames(self) -> None:
        """Outer frames appear before the exception's own frames."""
        try:
            exploding(Ping())
        except RuntimeError as exc:
            outer = [traceback.FrameSummary("/srv/host/bus.py", 10, "publish", lookup_line=False)]
            text = format_failure(exc, outer)

        assert text.startswith("Traceback (most recent call last):")
        assert text.index("in publish") < text.index("in exploding")
        assert text.rstrip().endswith("RuntimeError: All your base are belong to us")
