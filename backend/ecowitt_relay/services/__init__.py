"""
Services Package
================

These are the workers that do the actual work.

- MetricsRegistry: Holds every series and renders /metrics
- ReportIngestor: Applies station reports to the registry
- ActivityMonitor / RestartPolicy: The liveness watchdog
"""

from .metrics_registry import MetricsRegistry
from .report_ingestor import ReportIngestor
from .report_parser import RESERVED_FIELDS, decode_form, parse_report
from .watchdog import (
    RESTART_POLICIES,
    ActivityMonitor,
    ActivityRestartPolicy,
    FixedRestartPolicy,
    RestartPolicy,
    build_restart_policy,
    terminate_process,
)

__all__ = [
    "MetricsRegistry",
    "ReportIngestor",
    "RESERVED_FIELDS",
    "decode_form",
    "parse_report",
    "RESTART_POLICIES",
    "ActivityMonitor",
    "ActivityRestartPolicy",
    "FixedRestartPolicy",
    "RestartPolicy",
    "build_restart_policy",
    "terminate_process",
]
