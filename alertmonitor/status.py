"""
In-memory status board for the Weather Alert Monitor service.

Holds the latest outcome of every feed source for the status endpoint:
- Current alerts per source (replaced every cycle, never merged)
- Last check time and last error
- Source reliability counters for health monitoring

Nothing is persisted; a restart starts from an empty board.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from .classifier import Alert, Severity
from .errors import FetchError
from .reporter import Reporter
from .sources import FeedSource

logger = logging.getLogger(__name__)

# A source failing this many passes in a row is flagged as a risk.
FAILURE_RISK_THRESHOLD = 3
RELIABILITY_RISK_PERCENT = 80


@dataclass
class SourceState:
    """Latest known state of one feed source."""
    source_id: str
    display_name: str
    url: str
    locale: str
    alerts: List[Alert] = field(default_factory=list)
    last_checked: Optional[str] = None
    last_success_at: Optional[str] = None
    last_error: Optional[str] = None
    check_count: int = 0
    success_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    avg_response_time_ms: int = 0
    last_response_time_ms: int = 0

    @property
    def status(self) -> str:
        if self.check_count == 0:
            return "unknown"
        return "error" if self.last_error else "ok"

    @property
    def reliability_percent(self) -> float:
        if self.check_count == 0:
            return 0.0
        return round(self.success_count / self.check_count * 100, 1)

    def to_status(self) -> Dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "displayName": self.display_name,
            "alerts": [a.to_dict() for a in self.alerts],
            "lastChecked": self.last_checked,
            "lastError": self.last_error,
        }

    def to_health(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "source_name": self.display_name,
            "source_url": self.url,
            "locale": self.locale,
            "status": self.status,
            "last_checked": self.last_checked,
            "last_success_at": self.last_success_at,
            "check_count": self.check_count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "reliability_percent": self.reliability_percent,
            "avg_response_time_ms": self.avg_response_time_ms,
            "consecutive_failures": self.consecutive_failures,
            "active_alerts": len(self.alerts),
            "last_error": self.last_error,
        }


class StatusBoard(Reporter):
    """
    Thread-safe reporter that accumulates cycle outcomes in memory.

    Alerts reported during a pass are staged per source and published
    when the source completes, so readers never see a half-built list.
    """

    def __init__(self, sources: Optional[Mapping[str, FeedSource]] = None) -> None:
        self._lock = threading.Lock()
        self._states: Dict[str, SourceState] = {}
        self._pending: Dict[str, List[Alert]] = {}
        self._cycle_number = 0
        self._last_cycle_at: Optional[str] = None

        for source in (sources or {}).values():
            self._state_for(source)

    def _state_for(self, source: FeedSource) -> SourceState:
        state = self._states.get(source.id)
        if state is None:
            state = SourceState(
                source_id=source.id,
                display_name=source.display_name,
                url=source.url,
                locale=source.locale.value,
            )
            self._states[source.id] = state
        return state

    # =========================================================================
    # Reporter interface
    # =========================================================================

    def begin_cycle(self, cycle_number: int, started_at: datetime) -> None:
        with self._lock:
            self._cycle_number = cycle_number
            self._pending = {}

    def report(self, source_id: str, display_name: str, outcome: Union[Alert, FetchError]) -> None:
        if not isinstance(outcome, Alert):
            return
        with self._lock:
            self._pending.setdefault(source_id, []).append(outcome)

    def source_done(self, source: FeedSource, outcome: Union[List[Alert], FetchError],
                    response_time_ms: int = 0) -> None:
        now = datetime.utcnow().isoformat()
        success = not isinstance(outcome, FetchError)

        with self._lock:
            state = self._state_for(source)
            staged = self._pending.pop(source.id, None)

            state.check_count += 1
            state.last_checked = now

            if success:
                # Only successful checks carry a response time
                timed_count = state.success_count
                state.alerts = list(staged if staged is not None else outcome)
                state.success_count += 1
                state.consecutive_failures = 0
                state.last_success_at = now
                state.last_error = None
                state.avg_response_time_ms = (
                    int((state.avg_response_time_ms * timed_count + response_time_ms) / (timed_count + 1))
                    if timed_count > 0 else response_time_ms
                )
                state.last_response_time_ms = response_time_ms
            else:
                # Keep the previous alerts visible; the error says they are stale.
                state.error_count += 1
                state.consecutive_failures += 1
                state.last_error = str(outcome)
                logger.debug(f"{source.id}: {state.consecutive_failures} consecutive failure(s)")

    def end_cycle(self, result, next_run_minutes: Optional[float] = None) -> None:
        with self._lock:
            self._last_cycle_at = datetime.utcnow().isoformat()

    # =========================================================================
    # Queries
    # =========================================================================

    def snapshot(self) -> Dict[str, Any]:
        """Status document served by GET /api/alerts/status."""
        with self._lock:
            return {
                "perSource": [s.to_status() for s in self._states.values()],
                "cycle": self._cycle_number,
                "lastCycle": self._last_cycle_at,
            }

    def source_health(self) -> List[Dict[str, Any]]:
        """Reliability counters for every source."""
        with self._lock:
            return [s.to_health() for s in self._states.values()]

    def current_alerts(self, severity: Optional[Severity] = None) -> List[Alert]:
        """All alerts from the latest successful check of every source."""
        with self._lock:
            alerts = [a for s in self._states.values() for a in s.alerts]
        if severity is not None:
            alerts = [a for a in alerts if a.severity is severity]
        return alerts

    def detect_risks(self) -> List[str]:
        """Human-readable list of unhealthy sources."""
        risks = []
        for health in self.source_health():
            if health["check_count"] == 0:
                continue
            if health["consecutive_failures"] >= FAILURE_RISK_THRESHOLD:
                risks.append(f"Source failing repeatedly: {health['source_name']}")
            elif health["status"] == "error":
                risks.append(f"Source unavailable: {health['source_name']}")
            if health["reliability_percent"] < RELIABILITY_RISK_PERCENT:
                risks.append(f"Low reliability: {health['source_name']}")
        return risks

    @property
    def cycle_number(self) -> int:
        return self._cycle_number
