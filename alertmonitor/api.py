"""
REST API module for the Weather Alert Monitor.

Service deployment of the monitor: the scheduler polls in the background
and publishes into an in-memory status board. Provides endpoints for:
- Current alerts per source
- Source health monitoring
- Manual refresh
"""

import logging
import os
from typing import List, Optional
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from . import __version__
from .classifier import Severity
from .config import Settings, configure_logging, load_settings, resolve
from .reporter import CompositeReporter, ConsoleReporter
from .scheduler import AlertScheduler
from .status import StatusBoard

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================

class AlertModel(BaseModel):
    sourceId: str
    severity: str
    title: str
    detail: str
    observedAt: str


class SourceStatusModel(BaseModel):
    sourceId: str
    displayName: str
    alerts: List[AlertModel]
    lastChecked: Optional[str]
    lastError: Optional[str]


class StatusResponse(BaseModel):
    perSource: List[SourceStatusModel]
    cycle: int
    lastCycle: Optional[str]


class SourceHealth(BaseModel):
    source_id: str
    source_name: str
    source_url: str
    locale: str
    status: str
    last_checked: Optional[str]
    last_success_at: Optional[str]
    check_count: int
    success_count: int
    error_count: int
    reliability_percent: float
    avg_response_time_ms: int
    consecutive_failures: int
    active_alerts: int
    last_error: Optional[str]


class CycleSummary(BaseModel):
    cycle: int
    started_at: str
    finished_at: Optional[str]
    sources_ok: int
    sources_failed: int
    alerts: int
    errors: dict


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    scheduler: str
    uptime: str
    risks: List[str]


# =============================================================================
# Global State
# =============================================================================

board: Optional[StatusBoard] = None
scheduler: Optional[AlertScheduler] = None
start_time: Optional[datetime] = None
service_settings: Optional[Settings] = None


def build_service(settings: Settings, console: bool = True) -> AlertScheduler:
    """Wire a scheduler publishing into a fresh status board."""
    global board

    board = StatusBoard(settings.sources)
    reporters = [board]
    if console:
        reporters.append(ConsoleReporter(use_color=settings.use_color))

    return AlertScheduler(
        sources=settings.sources,
        reporter=CompositeReporter(reporters),
        refresh_minutes=settings.refresh_minutes,
        request_delay=settings.request_delay,
        max_workers=settings.max_workers,
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global scheduler, start_time

    logger.info("Starting Weather Alert Monitor service...")
    start_time = datetime.utcnow()

    settings = service_settings or resolve(load_settings())
    scheduler = build_service(settings, console=os.getenv("SERVICE_CONSOLE", "false").lower() == "true")

    # First pass runs immediately inside the scheduler thread
    scheduler.start()
    logger.info("Scheduler started")

    yield

    logger.info("Shutting down...")
    if scheduler:
        scheduler.close()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Weather Alert Monitor API",
    description="Active watches and warnings from Environment Canada Atom feeds",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Utility Functions
# =============================================================================

def detect_risks() -> List[str]:
    """Detect system risks."""
    if not board or not scheduler:
        return ["System not initialized"]

    risks = board.detect_risks()
    if not scheduler.is_running:
        risks.append("Scheduler not running")
    return risks


def get_uptime() -> str:
    """Get formatted uptime string."""
    if not start_time:
        return "N/A"
    delta = datetime.utcnow() - start_time
    hours, remainder = divmod(int(delta.total_seconds()), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h {minutes}m {seconds}s"


# =============================================================================
# API Endpoints - Info
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information."""
    return {
        "name": "Weather Alert Monitor API",
        "version": __version__,
        "description": "Watches and warnings from Environment Canada",
        "sources": len(scheduler.sources) if scheduler else 0,
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    risks = detect_risks()

    return HealthResponse(
        status="healthy" if not risks else "degraded",
        timestamp=datetime.utcnow().isoformat(),
        scheduler="running" if scheduler and scheduler.is_running else "stopped",
        uptime=get_uptime(),
        risks=risks
    )


# =============================================================================
# API Endpoints - Alerts
# =============================================================================

@app.get("/api/alerts/status", response_model=StatusResponse, tags=["Alerts"])
async def get_alert_status():
    """Latest alerts, check time and error for every source."""
    if not board:
        raise HTTPException(status_code=503, detail="Status board not available")

    return board.snapshot()


@app.get("/api/alerts", response_model=List[AlertModel], tags=["Alerts"])
async def get_alerts(
    severity: Optional[str] = Query(default=None, description="Filter by severity: WARNING, WATCH, STATEMENT, NOTICE")
):
    """Current alerts across all sources."""
    if not board:
        raise HTTPException(status_code=503, detail="Status board not available")

    level = None
    if severity:
        try:
            level = Severity(severity.upper())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown severity: {severity}")

    return [a.to_dict() for a in board.current_alerts(level)]


@app.get("/api/alerts/sources", response_model=List[SourceHealth], tags=["Status"])
async def get_sources():
    """Get health status of feed sources."""
    if not board:
        raise HTTPException(status_code=503, detail="Status board not available")

    return board.source_health()


# =============================================================================
# API Endpoints - Admin
# =============================================================================

@app.post("/api/alerts/refresh", response_model=CycleSummary, tags=["Admin"])
def trigger_refresh():
    """Run one pass over all sources now."""
    if not scheduler:
        raise HTTPException(status_code=503, detail="Scheduler not available")

    result = scheduler.trigger_immediate_cycle()
    return result.summary()


@app.get("/api/scheduler", tags=["Admin"])
async def get_scheduler_status():
    """Scheduler state and last pass summary."""
    if not scheduler:
        raise HTTPException(status_code=503, detail="Scheduler not available")

    return scheduler.get_scheduler_status()


def serve(settings: Optional[Settings] = None) -> None:
    """Run the service with uvicorn."""
    import uvicorn

    global service_settings
    service_settings = settings

    configure_logging(settings.log_level if settings else os.getenv("LOG_LEVEL", "INFO").upper())
    reload = os.getenv("DEBUG", "false").lower() == "true"
    uvicorn.run(
        "alertmonitor.api:app" if reload else app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload
    )


if __name__ == "__main__":
    serve()
