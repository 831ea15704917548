"""
Console entry point for the Weather Alert Monitor.

Polls every configured feed until SIGINT/SIGTERM, printing color-coded
alert blocks. --once runs a single pass; --serve starts the REST service.
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from .config import Settings, configure_logging, load_settings, resolve
from .errors import ConfigError
from .reporter import ConsoleReporter
from .scheduler import AlertScheduler

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ALL_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alert-monitor",
        description="Monitor Environment Canada weather alert feeds."
    )
    parser.add_argument("--refresh-minutes", type=float, help="minutes between passes")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds")
    parser.add_argument("--delay-ms", type=int, help="delay between feed requests")
    parser.add_argument("--workers", type=int, help="feeds processed concurrently")
    parser.add_argument("--sources", metavar="FILE", help="YAML feed registry")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING...")
    parser.add_argument("--once", action="store_true", help="run a single pass and exit")
    parser.add_argument("--no-color", action="store_true", help="plain console output")
    parser.add_argument("--serve", action="store_true", help="run the REST status service")
    return parser


def settings_from_args(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    settings = base or load_settings()
    return settings.with_overrides(
        refresh_minutes=args.refresh_minutes,
        request_timeout=args.timeout,
        request_delay_ms=args.delay_ms,
        max_workers=args.workers,
        sources_file=args.sources,
        log_level=args.log_level.upper() if args.log_level else None,
        use_color=False if args.no_color else None,
    )


def run_monitor(settings: Settings, once: bool = False,
                stop_event: Optional[threading.Event] = None) -> int:
    """Run the console monitor until stop_event is set (or one pass with once)."""
    reporter = ConsoleReporter(use_color=settings.use_color)
    scheduler = AlertScheduler(
        sources=settings.sources,
        reporter=reporter,
        refresh_minutes=settings.refresh_minutes,
        request_delay=settings.request_delay,
        max_workers=settings.max_workers,
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )

    if once:
        try:
            result = scheduler.run_cycle()
        finally:
            scheduler.close()
        return EXIT_ALL_FAILED if not result.succeeded else EXIT_OK

    stop_event = stop_event or threading.Event()
    print(f"--- MONITORING {len(settings.sources)} SOURCES ---")

    scheduler.start()
    try:
        stop_event.wait()
    finally:
        scheduler.close()

    return EXIT_OK


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = resolve(settings_from_args(args))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(settings.log_level)

    if args.serve:
        from .api import serve
        serve(settings)
        return EXIT_OK

    stop_event = threading.Event()
    if not args.once:
        _install_signal_handlers(stop_event)

    return run_monitor(settings, once=args.once, stop_event=stop_event)
