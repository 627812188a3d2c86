"""ExceptionSanitizer — runs observer callbacks and reports their failures.

A failing callback must never unwind into the host bus.  The sanitizer
catches the failure, rebuilds the stack the host would have seen, strips
the frames that belong to this package's own dispatch machinery and hands
the formatted trace to a diagnostic sink.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
from collections.abc import Callable, Iterable
from typing import Any

from event_observers.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Receives ``(severity, formatted_message)`` for every intercepted failure.
DiagnosticSink = Callable[[int, str], None]

# Frames from these modules are dispatch plumbing, not user code.
INTERNAL_MODULES: tuple[str, ...] = (
    "event_observers.core.sanitizer",
    "event_observers.core.policies",
    "event_observers.core.observers",
)


def log_sink(level: int, message: str) -> None:
    """Default sink: write *message* to this module's logger at *level*."""
    logger.log(level, "%s", message)


def qualified_name(event_type: type) -> str:
    """Return the dotted ``module.QualName`` of a class."""
    return f"{event_type.__module__}.{event_type.__qualname__}"


def _normalise(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


def _module_files(modules: Iterable[str]) -> frozenset[str]:
    files: set[str] = set()
    for name in modules:
        path = getattr(sys.modules.get(name), "__file__", None)
        if path:
            files.add(_normalise(path))
    return frozenset(files)


def trim_stack(
    frames: Iterable[traceback.FrameSummary],
    modules: Iterable[str] = INTERNAL_MODULES,
) -> traceback.StackSummary:
    """Drop every frame whose source file belongs to one of *modules*.

    Args:
        frames: Frames in outermost-first order.
        modules: Dotted names of the modules to hide.  Modules that are not
                 imported are ignored.

    Returns:
        A new ``StackSummary`` with the remaining frames in their original order.
    """
    internal = _module_files(modules)
    return traceback.StackSummary.from_list(
        [frame for frame in frames if _normalise(frame.filename) not in internal]
    )


def format_failure(
    exc: BaseException,
    outer: Iterable[traceback.FrameSummary] = (),
    modules: Iterable[str] = INTERNAL_MODULES,
) -> str:
    """Format *exc* as a traceback with internal frames removed.

    Args:
        exc: The intercepted exception.
        outer: Frames that led up to the point where *exc* was caught, so the
               report also shows who delivered the event.
        modules: Dotted names of the modules whose frames are hidden.

    Returns:
        The full ``Traceback (most recent call last): ...`` text.
    """
    report = traceback.TracebackException.from_exception(exc)
    report.stack = trim_stack([*outer, *report.stack], modules)
    return "".join(report.format())


class ExceptionSanitizer:
    """Invoke callbacks so that no failure escapes to the caller.

    Args:
        sink: Where failure reports go.  Defaults to :func:`log_sink`.
        level: Severity attached to each report.
        internal_modules: Modules whose frames are stripped from reports.
    """

    def __init__(
        self,
        sink: DiagnosticSink | None = None,
        level: int = logging.INFO,
        internal_modules: Iterable[str] = INTERNAL_MODULES,
    ) -> None:
        """Initialise the sanitizer."""
        self._sink = sink or log_sink
        self._level = level
        self._internal_modules = tuple(internal_modules)
        self.failures = 0

    @property
    def level(self) -> int:
        """Return the severity used for failure reports."""
        return self._level

    def invoke(self, callback: Callable[..., Any], event: Any, *args: Any, event_type: type | None = None) -> None:
        """Call ``callback(event, *args)``, reporting instead of raising on failure.

        Args:
            callback: The observer callback.
            event: The delivered event.
            *args: Extra positional arguments (e.g. remaining time).
            event_type: Declared event type used to tag the report.  Defaults
                        to the runtime type of *event*.

        Raises:
            ValidationError: If *callback* or *event* is ``None``.
        """
        if callback is None:
            msg = "callback cannot be None"
            raise ValidationError(msg)
        if event is None:
            msg = "event cannot be None"
            raise ValidationError(msg)
        try:
            callback(event, *args)
        except Exception as exc:
            self._report(exc, event_type or type(event), traceback.extract_stack())

    def _report(self, exc: Exception, event_type: type, outer: traceback.StackSummary) -> None:
        self.failures += 1
        trace = format_failure(exc, outer, self._internal_modules)
        message = f"An unhandled exception was intercepted whilst handling {qualified_name(event_type)}:\n{trace}"
        try:
            self._sink(self._level, message)
        except Exception:
            logger.exception("Diagnostic sink %r failed", self._sink)
