"""
Report Ingestor
===============

Applies a station report to the metrics registry.

For every accepted report:
1. The per-station report counter goes up (when source-IP tracking is on)
2. Every numeric field sets its ecowitt_relay_<field>_raw gauge
3. The activity monitor records the report for the watchdog

A body that cannot be decoded changes nothing. The station still gets a 200
because it has no way to act on an error anyway.
"""

import logging
from typing import Optional

from ecowitt_relay.errors import ReportDecodeError
from ecowitt_relay.models import Report
from ecowitt_relay.services.metrics_registry import MetricsRegistry
from ecowitt_relay.services.report_parser import parse_report
from ecowitt_relay.services.watchdog import ActivityMonitor

logger = logging.getLogger(__name__)


class ReportIngestor:
    """Turns report bodies into metric updates."""

    REPORT_COUNTER = "report_count"

    def __init__(
        self,
        metrics: MetricsRegistry,
        monitor: ActivityMonitor,
        track_source_ip: bool = True,
        source_ip_header: str = "X-Real-IP"
    ):
        self.metrics = metrics
        self.monitor = monitor
        self.track_source_ip = track_source_ip
        self.source_ip_header = source_ip_header

    def ingest(self, body: bytes, source_ip: Optional[str] = None) -> Optional[Report]:
        """
        Decode a report body and emit its metrics.

        Returns:
            The decoded report, or None if the body was not URL-encoded

        Raises:
            MetricRegistrationError: A metric could not be registered (fatal)
        """
        try:
            report = parse_report(body, source_ip)
        except ReportDecodeError as e:
            logger.warning(f"failed to parse as url encoded body: {e}")
            return None

        if self.track_source_ip:
            self.metrics.counter(
                self.REPORT_COUNTER,
                report.station_labels(),
                "Number of reports received per station",
            ).inc()

        for field, value in report.measurements.items():
            identity = report.identity(field, self.track_source_ip)
            self.metrics.gauge(field, identity.labels()).set(value)

        self.monitor.record()

        logger.debug(
            f"report from {report.model}/{report.station_type} ({report.source_ip}): "
            f"{len(report.measurements)} fields, {len(report.skipped)} skipped"
        )
        return report
