"""
Report Models
=============
Pydantic models for station reports and the metric series they feed.

A Report lives for exactly one HTTP request. A MetricIdentity is what makes
two reports land on the same long-lived series: same field, same labels.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


UNKNOWN = "unknown"


class MetricIdentity(BaseModel):
    """
    Identity of one metric series.

    source_ip is None when source-IP tracking is switched off, in which case
    the series carries no source_ip label at all.
    """
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Reported field name (e.g. tempf)")
    model: str = Field(default=UNKNOWN, description="Station model")
    station_type: str = Field(default=UNKNOWN, description="Station firmware type")
    source_ip: Optional[str] = Field(default=None, description="Address the report came from")

    def labels(self) -> dict[str, str]:
        """Prometheus label set for this series."""
        labels = {"model": self.model, "stationType": self.station_type}
        if self.source_ip is not None:
            labels["source_ip"] = self.source_ip
        return labels


class Report(BaseModel):
    """
    A decoded station report.

    Fields:
        model: Station model (e.g. "GW1100A_V2.1.4"), "unknown" if absent
        station_type: Station type (e.g. "EasyWeatherV1.6.4"), "unknown" if absent
        source_ip: Address from the reverse-proxy header, "unknown" if absent
        measurements: Numeric measurements keyed by field name
        skipped: Fields dropped because their value was not numeric or their
            name cannot become a metric name

    Example body:
        PASSKEY=ABC&stationtype=EasyWeatherV1.6.4&dateutc=2023-01-01+10:00:00
        &tempf=72.5&humidity=40&model=GW1100A
    """
    model: str = Field(default=UNKNOWN)
    station_type: str = Field(default=UNKNOWN)
    source_ip: str = Field(default=UNKNOWN)
    measurements: dict[str, float] = Field(default_factory=dict)
    skipped: list[str] = Field(default_factory=list)

    def identity(self, field: str, track_source_ip: bool = True) -> MetricIdentity:
        """Series identity of one measurement in this report."""
        return MetricIdentity(
            field=field,
            model=self.model,
            station_type=self.station_type,
            source_ip=self.source_ip if track_source_ip else None,
        )

    def station_labels(self) -> dict[str, str]:
        """Label set of the per-station report counter."""
        return {
            "model": self.model,
            "stationType": self.station_type,
            "source_ip": self.source_ip,
        }
