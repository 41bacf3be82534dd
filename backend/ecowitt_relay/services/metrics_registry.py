"""
Metrics Registry
================

The process-wide store of every series the relay has ever emitted.

WHAT IT DOES:
------------
1. Hands out gauges and counters by name + label set, creating them on first use
2. Never removes a series (the registry only grows)
3. Serializes everything in the Prometheus text exposition format for /metrics

CREATE-OR-GET:
-------------
Creation is an atomic "insert if absent, else return existing" under a lock.
If the underlying CollectorRegistry already holds a compatible collector under
the same name (registered by someone else), the freshly built one is thrown
away and the existing one is adopted. Anything else is a
MetricRegistrationError, which callers treat as fatal.
"""

import logging
import threading
from typing import Optional, Tuple, Type

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.metrics import MetricWrapperBase

from ecowitt_relay.errors import MetricRegistrationError

logger = logging.getLogger(__name__)


class MetricsRegistry:
    """
    Owns a CollectorRegistry and the metric families registered in it.

    One instance per application. Tests build their own so nothing leaks
    between them.
    """

    NAMESPACE = "ecowitt_relay"

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        include_process_metrics: bool = False
    ):
        """
        Args:
            registry: Collector registry to write into. A new one by default.
            include_process_metrics: Also export process_* and python_info
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self._lock = threading.Lock()
        self._families: dict[str, MetricWrapperBase] = {}

        if include_process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)

    # =========================================================================
    # CREATE-OR-GET
    # =========================================================================

    def gauge(self, field: str, labels: dict[str, str]):
        """
        Get the gauge series for a reported field.

        The metric is named ecowitt_relay_<field>_raw.

        Args:
            field: Reported field name (e.g. "tempf")
            labels: Label set of the series

        Returns:
            The labelled gauge child, ready for .set()
        """
        family = self._get_or_register(
            Gauge,
            f"{field}_raw",
            f"Raw value of the {field} field reported by the station",
            tuple(labels),
        )
        return family.labels(**labels)

    def counter(self, name: str, labels: dict[str, str], documentation: str = ""):
        """Get the counter series ecowitt_relay_<name> for a label set."""
        family = self._get_or_register(
            Counter,
            name,
            documentation or f"Count of {name.replace('_', ' ')}",
            tuple(labels),
        )
        return family.labels(**labels)

    def _get_or_register(
        self,
        metric_type: Type[MetricWrapperBase],
        name: str,
        documentation: str,
        labelnames: Tuple[str, ...]
    ) -> MetricWrapperBase:
        with self._lock:
            existing = self._families.get(name)
            if existing is not None:
                return self._check_compatible(existing, metric_type, name, labelnames)

            try:
                metric = metric_type(
                    name,
                    documentation,
                    labelnames=labelnames,
                    namespace=self.NAMESPACE,
                    registry=None,
                )
            except ValueError as e:
                raise MetricRegistrationError(f"cannot build metric {name!r}: {e}") from e

            try:
                self.registry.register(metric)
            except ValueError as e:
                metric = self._adopt_registered(metric, metric_type, name, labelnames, e)

            self._families[name] = metric
            logger.debug(f"Registered {metric_type.__name__.lower()} {metric._name}")
            return metric

    def _adopt_registered(self, metric, metric_type, name, labelnames, error):
        """Resolve a registration conflict by reusing the collector already present."""
        # CollectorRegistry keeps no public name lookup; _names_to_collectors is
        # present throughout the prometheus-client range pinned in pyproject.toml
        existing = self.registry._names_to_collectors.get(metric._name)
        if existing is None:
            raise MetricRegistrationError(f"failed to register {metric._name}: {error}") from error

        logger.debug(f"{metric._name} already registered, reusing existing collector")
        return self._check_compatible(existing, metric_type, name, labelnames)

    @staticmethod
    def _check_compatible(existing, metric_type, name, labelnames):
        if not isinstance(existing, metric_type):
            raise MetricRegistrationError(
                f"{name!r} is already registered as {type(existing).__name__}, "
                f"not {metric_type.__name__}"
            )
        if tuple(getattr(existing, "_labelnames", ())) != labelnames:
            raise MetricRegistrationError(
                f"{name!r} is already registered with labels "
                f"{getattr(existing, '_labelnames', ())}, not {labelnames}"
            )
        return existing

    # =========================================================================
    # EXPOSITION
    # =========================================================================

    def expose(self) -> Tuple[bytes, str]:
        """Serialize every series. Returns (payload, content type)."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST

    def family_names(self) -> list[str]:
        """Full names of the metric families created through this registry."""
        with self._lock:
            return sorted(metric._name for metric in self._families.values())
