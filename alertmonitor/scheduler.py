"""
Scheduler module for the Weather Alert Monitor.

Runs polling passes over every registered feed source:
- First pass fires immediately, then one pass every refresh interval
- A small delay between requests keeps the upstream rate limiter happy
- A failure on one source is reported for that source only and never
  stops the other sources or later passes
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .classifier import Alert, classify_entries
from .errors import ConfigError, FetchError, ParseError
from .fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, FeedFetcher
from .parser import parse_feed
from .reporter import Reporter
from .sources import FeedSource

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MINUTES = 5
DEFAULT_REQUEST_DELAY = 0.5  # seconds between two feed requests
JOB_ID = "alert_cycle"

SourceOutcome = Union[List[Alert], FetchError]


@dataclass
class CycleResult:
    """Outcome of one pass, owned by that pass."""
    cycle_number: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    per_source: Dict[str, SourceOutcome] = field(default_factory=dict)

    def alerts(self) -> List[Alert]:
        return [a for outcome in self.per_source.values()
                if not isinstance(outcome, FetchError) for a in outcome]

    def errors(self) -> Dict[str, FetchError]:
        return {sid: o for sid, o in self.per_source.items() if isinstance(o, FetchError)}

    @property
    def succeeded(self) -> List[str]:
        return [sid for sid, o in self.per_source.items() if not isinstance(o, FetchError)]

    @property
    def failed(self) -> List[str]:
        return list(self.errors())

    def summary(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle_number,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "sources_ok": len(self.succeeded),
            "sources_failed": len(self.failed),
            "alerts": len(self.alerts()),
            "errors": {sid: str(e) for sid, e in self.errors().items()},
        }


class AlertScheduler:
    """
    Drives the Idle -> Running -> Idle polling loop.

    The loop only ends when stop() is called; in the console monitor that
    happens on SIGINT/SIGTERM.
    """

    def __init__(
        self,
        sources: Mapping[str, FeedSource],
        reporter: Optional[Reporter] = None,
        fetcher: Optional[FeedFetcher] = None,
        refresh_minutes: float = DEFAULT_REFRESH_MINUTES,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        max_workers: int = 1,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT
    ):
        if not sources:
            raise ConfigError("Source registry is empty - nothing to monitor")
        if refresh_minutes <= 0:
            raise ConfigError(f"Refresh interval must be positive, got {refresh_minutes}")
        if max_workers < 1:
            raise ConfigError(f"Worker count must be at least 1, got {max_workers}")

        self.sources = sources
        self.reporter = reporter or Reporter()
        self.fetcher = fetcher or FeedFetcher(timeout=timeout, user_agent=user_agent, pool_size=max_workers)
        self.refresh_minutes = refresh_minutes
        self.request_delay = max(request_delay, 0)
        self.max_workers = max_workers
        self.scheduler = BackgroundScheduler()

        self._is_running = False
        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()
        self._cycle_count = 0
        self._last_result: Optional[CycleResult] = None

    # =========================================================================
    # One source
    # =========================================================================

    def _process_timed(self, source: FeedSource, observed_at: Optional[datetime] = None) -> Tuple[List[Alert], int]:
        content, response_time = self.fetcher.fetch_timed(source.url)
        entries = parse_feed(content, source.locale)
        alerts = classify_entries(entries, source.locale, source.id, observed_at or datetime.utcnow())
        return alerts, response_time

    def process_source(self, source: FeedSource, observed_at: Optional[datetime] = None) -> List[Alert]:
        """
        Fetch, parse and classify one source.

        Raises:
            FetchError: on transport failure.
            ParseError: on a malformed feed.
        """
        alerts, _ = self._process_timed(source, observed_at)
        return alerts

    def _run_source(self, source: FeedSource) -> SourceOutcome:
        """Process one source inside the isolation boundary."""
        response_time = 0
        try:
            outcome, response_time = self._process_timed(source)
            logger.info(f"[{source.id}] {len(outcome)} active alert(s)")
        except FetchError as e:
            logger.error(f"[{source.id}] Fetch failed: {e}")
            outcome = e
        except ParseError as e:
            logger.error(f"[{source.id}] Parse failed: {e}")
            outcome = FetchError(f"Parse error: {e}")
        except Exception as e:
            logger.exception(f"[{source.id}] Unexpected error")
            outcome = FetchError(f"Unexpected error: {e}")

        if isinstance(outcome, FetchError):
            self._notify("report", source.id, source.display_name, outcome)
        else:
            for alert in outcome:
                self._notify("report", source.id, source.display_name, alert)
        self._notify("source_done", source, outcome, response_time)

        return outcome

    def _notify(self, method: str, *args) -> None:
        try:
            getattr(self.reporter, method)(*args)
        except Exception as e:
            logger.error(f"Reporter {method} failed: {e}")

    # =========================================================================
    # One pass
    # =========================================================================

    def _wait_between_requests(self, index: int) -> bool:
        """Politeness delay; returns True if shutdown was requested."""
        if index == 0:
            return self._stop_event.is_set()
        return self._stop_event.wait(self.request_delay)

    def _run_sequential(self, result: CycleResult) -> None:
        for index, source in enumerate(self.sources.values()):
            if self._wait_between_requests(index):
                logger.info("Shutdown requested - ending pass early")
                break
            result.per_source[source.id] = self._run_source(source)

    def _run_concurrent(self, result: CycleResult) -> None:
        submitted = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="feed") as pool:
            for index, source in enumerate(self.sources.values()):
                if self._wait_between_requests(index):
                    logger.info("Shutdown requested - ending pass early")
                    break
                submitted.append((source, pool.submit(self._run_source, source)))

            for source, future in submitted:
                result.per_source[source.id] = future.result()

    def run_cycle(self) -> CycleResult:
        """Run one pass over every registered source."""
        with self._cycle_lock:
            self._cycle_count += 1
            result = CycleResult(cycle_number=self._cycle_count, started_at=datetime.utcnow())

            logger.info(f"Starting pass #{result.cycle_number} over {len(self.sources)} sources")
            self._notify("begin_cycle", result.cycle_number, result.started_at)

            if self.max_workers > 1:
                self._run_concurrent(result)
            else:
                self._run_sequential(result)

            result.finished_at = datetime.utcnow()
            self._last_result = result

            self._notify("end_cycle", result, self.refresh_minutes if self._is_running else None)
            logger.info(f"Pass #{result.cycle_number} complete: {len(result.succeeded)} ok, "
                        f"{len(result.failed)} failed, {len(result.alerts())} alerts")
            return result

    # =========================================================================
    # Timer
    # =========================================================================

    def start(self) -> None:
        """Start polling; the first pass runs right away."""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self.scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(minutes=self.refresh_minutes),
            id=JOB_ID,
            name='Weather alert feed pass',
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        self._is_running = True
        self.scheduler.start()

        logger.info(f"Scheduler started: {len(self.sources)} sources every {self.refresh_minutes}min")

    def stop(self) -> None:
        """Stop the timer and interrupt any pending politeness delay."""
        if not self._is_running:
            return
        self._stop_event.set()
        self.scheduler.shutdown(wait=True)
        self._stop_event.clear()
        self.scheduler = BackgroundScheduler()
        self._is_running = False
        logger.info("Scheduler stopped")

    def close(self) -> None:
        """Stop polling and release the HTTP session."""
        self.stop()
        self.fetcher.close()

    def trigger_immediate_cycle(self) -> CycleResult:
        """Run a pass now, outside the timer."""
        return self.run_cycle()

    def get_last_result(self) -> Optional[CycleResult]:
        return self._last_result

    def get_scheduler_status(self) -> dict:
        """Get scheduler status information."""
        job = self.scheduler.get_job(JOB_ID) if self._is_running else None

        return {
            "is_running": self._is_running,
            "refresh_minutes": self.refresh_minutes,
            "sources": len(self.sources),
            "cycle_count": self._cycle_count,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "last_cycle": self._last_result.summary() if self._last_result else None,
        }

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count
