"""
Ecowitt Prometheus Relay - Application
======================================
FastAPI application that turns Ecowitt weather station uploads into
Prometheus metrics.

ARCHITECTURE:

    [Weather Station] --POST /data/report/--> [This Relay] <--GET /metrics-- [Prometheus]
                                                   |
                                                   v
                                          [Liveness Watchdog]
                                       (exit 1 when reports stop)

HOW TO RUN:
    pip install -e .

    # With flags (see cli.py)
    ecowitt-relay -config config-example.json -ttl 10m

    # Or straight through uvicorn, configured from the environment
    RELAY_TTL=10m uvicorn ecowitt_relay.main:create_app --factory --port 8080
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from ecowitt_relay.config import FileConfig, Settings
from ecowitt_relay.routers import fallback_router, metrics_router, report_router, system_router
from ecowitt_relay.services import (
    ActivityMonitor,
    MetricsRegistry,
    ReportIngestor,
    build_restart_policy,
    terminate_process,
)
from ecowitt_relay.services.watchdog import Terminator

logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    STARTUP:
        Start the scheduler and arm the watchdog, if one is configured.

    SHUTDOWN:
        Drop the watchdog job and stop the scheduler. Nothing else holds
        resources.
    """
    policy = app.state.restart_policy
    scheduler = None

    if policy is not None:
        scheduler = AsyncIOScheduler()
        policy.start(scheduler)
        scheduler.start()
    else:
        logger.info("Watchdog disabled (no ttl)")

    yield

    if scheduler is not None:
        policy.stop()
        scheduler.shutdown(wait=False)


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    metrics: Optional[MetricsRegistry] = None,
    file_config: Optional[FileConfig] = None,
    terminate: Terminator = terminate_process
) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Runtime settings. Read from the environment when omitted.
        metrics: Registry to export. A fresh one when omitted.
        file_config: Parsed JSON config file
        terminate: Called with an exit status when the process must die
            (watchdog expiry, fatal registration error)

    Returns:
        The FastAPI app, with its collaborators on app.state
    """
    settings = settings or Settings.from_env()
    if metrics is None:
        metrics = MetricsRegistry(include_process_metrics=settings.process_metrics)

    monitor = ActivityMonitor()
    restart_policy = build_restart_policy(
        settings.restart_policy, settings.ttl, monitor, terminate
    )

    app = FastAPI(
        title="Ecowitt Prometheus Relay",
        description=(
            "Accepts payloads from an Ecowitt weather station and presents the "
            "data on a /metrics endpoint for a Prometheus scraper."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.file_config = file_config or FileConfig()
    app.state.metrics = metrics
    app.state.monitor = monitor
    app.state.restart_policy = restart_policy
    app.state.terminate = terminate
    app.state.ingestor = ReportIngestor(
        metrics,
        monitor,
        track_source_ip=settings.track_source_ip,
        source_ip_header=settings.source_ip_header,
    )

    app.include_router(report_router)
    app.include_router(metrics_router)
    app.include_router(system_router)

    # Catch-all 404, must stay last
    app.include_router(fallback_router)

    return app
