"""
Models Package
==============

Import from here instead of the individual files.

Example:
    from ecowitt_relay.models import Report, MetricIdentity
"""

from .report import (
    UNKNOWN,
    MetricIdentity,
    Report,
)

__all__ = [
    "UNKNOWN",
    "MetricIdentity",
    "Report",
]
