"""
Reporters for the Weather Alert Monitor.

A reporter is the replaceable sink of a cycle. The console reporter builds
colorless records first and applies color only when rendering, so the
formatting can be tested without a terminal.
"""

import logging
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, TextIO, Tuple, Union

from .classifier import Alert, Severity
from .errors import FetchError
from .sources import FeedSource

if TYPE_CHECKING:
    from .scheduler import CycleResult

logger = logging.getLogger(__name__)

RULE_WIDTH = 40

ANSI_RESET = "\033[0m"
SEVERITY_COLORS = {
    Severity.WARNING: "\033[91m",    # red
    Severity.WATCH: "\033[93m",      # yellow
    Severity.STATEMENT: "\033[37m",  # gray
    Severity.NOTICE: "\033[97m",     # white
}
ERROR_COLOR = "\033[91m"


@dataclass(frozen=True)
class AlertRecord:
    """A formatted, colorless console block."""
    severity: Optional[Severity]
    header: str
    body: Tuple[str, ...] = ()
    framed: bool = False


def color_for(severity: Optional[Severity]) -> str:
    """ANSI color for a severity; None means an error line."""
    if severity is None:
        return ERROR_COLOR
    return SEVERITY_COLORS.get(severity, "")


def format_alert(display_name: str, alert: Alert) -> AlertRecord:
    """Build the console block for one alert."""
    return AlertRecord(
        severity=alert.severity,
        header=f" >>> {display_name.upper()} : {alert.severity.value} <<<",
        body=(f"Headline: {alert.title}", f"Details:  {alert.detail}"),
        framed=True,
    )


def format_error(display_name: str, error: Exception) -> AlertRecord:
    """Build the one-line console notice for a failed source."""
    return AlertRecord(
        severity=None,
        header=f"[{display_name}] Error: {error}",
    )


def fallback_line(source_id: str, outcome: object) -> str:
    """Plain line used when a record cannot be formatted."""
    try:
        text = repr(outcome)
    except Exception:
        text = type(outcome).__name__
    return f"[{source_id}] {text}"


class Reporter:
    """
    Sink for cycle outcomes.

    report() is called once per alert or once per failed source; every
    hook defaults to a no-op, so the base class doubles as a null sink.
    Implementations must not raise.
    """

    def begin_cycle(self, cycle_number: int, started_at: datetime) -> None:
        pass

    def report(self, source_id: str, display_name: str, outcome: Union[Alert, FetchError]) -> None:
        pass

    def source_done(self, source: FeedSource, outcome: Union[List[Alert], FetchError],
                    response_time_ms: int = 0) -> None:
        pass

    def end_cycle(self, result: "CycleResult", next_run_minutes: Optional[float] = None) -> None:
        pass


class ConsoleReporter(Reporter):
    """Color-tagged terminal output, one block per alert."""

    def __init__(self, stream: Optional[TextIO] = None, use_color: Optional[bool] = None):
        self.stream = stream if stream is not None else sys.stdout
        if use_color is None:
            use_color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_color = use_color
        self._lock = threading.Lock()

    def render(self, record: AlertRecord) -> str:
        """Render a record; color is applied to the header and rules only."""
        color = color_for(record.severity) if self.use_color else ""
        reset = ANSI_RESET if color else ""

        header = [record.header]
        if record.framed:
            rule = "=" * RULE_WIDTH
            header = [rule, record.header, rule]

        out = [f"{color}{line}{reset}" for line in header]
        out.extend(record.body)
        return "\n".join(out)

    def _write(self, text: str) -> None:
        with self._lock:
            try:
                self.stream.write(text + "\n")
                self.stream.flush()
            except (OSError, ValueError) as e:
                logger.error(f"Console write failed: {e}")

    def begin_cycle(self, cycle_number: int, started_at: datetime) -> None:
        self._write(f"--- UPDATING: {started_at:%H:%M:%S} ---")

    def report(self, source_id: str, display_name: str, outcome: Union[Alert, FetchError]) -> None:
        try:
            if isinstance(outcome, Alert):
                text = "\n" + self.render(format_alert(display_name, outcome))
            else:
                text = self.render(format_error(display_name, outcome))
        except Exception as e:
            logger.warning(f"Formatting failed for {source_id}: {e}")
            text = fallback_line(source_id, outcome)
        self._write(text)

    def end_cycle(self, result: "CycleResult", next_run_minutes: Optional[float] = None) -> None:
        if next_run_minutes is not None:
            self._write(f"\nNext check in {next_run_minutes:g} minutes...")


class CompositeReporter(Reporter):
    """Fans every call out to several reporters."""

    def __init__(self, reporters: Iterable[Reporter]):
        self.reporters = list(reporters)

    def _each(self, method: str, *args) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(*args)
            except Exception as e:
                logger.error(f"{type(reporter).__name__}.{method} failed: {e}")

    def begin_cycle(self, cycle_number: int, started_at: datetime) -> None:
        self._each("begin_cycle", cycle_number, started_at)

    def report(self, source_id: str, display_name: str, outcome: Union[Alert, FetchError]) -> None:
        self._each("report", source_id, display_name, outcome)

    def source_done(self, source: FeedSource, outcome: Union[List[Alert], FetchError],
                    response_time_ms: int = 0) -> None:
        self._each("source_done", source, outcome, response_time_ms)

    def end_cycle(self, result: "CycleResult", next_run_minutes: Optional[float] = None) -> None:
        self._each("end_cycle", result, next_run_minutes)
