"""
Tests for the report endpoint.

Run:
    pytest tests/test_report_endpoint.py -v
"""

import asyncio

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry, Counter

from ecowitt_relay.config import Settings
from ecowitt_relay.main import create_app
from ecowitt_relay.routers.report import receive_report
from ecowitt_relay.services import MetricsRegistry


FORM = {"Content-Type": "application/x-www-form-urlencoded"}

STATION = {"model": "GW1100A", "stationType": "EasyWeatherV1.6.4", "source_ip": "unknown"}


def post_report(client, body, path="/data/report/", headers=None):
    return client.post(path, content=body, headers={**FORM, **(headers or {})})


def series(metrics, name):
    """All samples of one metric name as {labels-tuple: value}."""
    found = {}
    for family in metrics.registry.collect():
        for sample in family.samples:
            if sample.name == name:
                found[tuple(sorted(sample.labels.items()))] = sample.value
    return found


# =============================================================================
# GAUGE EMISSION
# =============================================================================

class TestGaugeEmission:

    def test_one_gauge_per_numeric_field(self, client, metrics):
        body = (
            "PASSKEY=ABC&stationtype=EasyWeatherV1.6.4&dateutc=2024-05-01+10:00:00"
            "&tempinf=71.6&humidityin=40&baromrelin=29.92&tempf=72.5&freq=868M&model=GW1100A"
        )
        response = post_report(client, body)

        assert response.status_code == 200
        assert metrics.family_names() == [
            "ecowitt_relay_baromrelin_raw",
            "ecowitt_relay_humidityin_raw",
            "ecowitt_relay_report_count",
            "ecowitt_relay_tempf_raw",
            "ecowitt_relay_tempinf_raw",
        ]
        assert metrics.registry.get_sample_value("ecowitt_relay_tempf_raw", STATION) == 72.5
        assert metrics.registry.get_sample_value("ecowitt_relay_humidityin_raw", STATION) == 40.0

    def test_reserved_fields_are_not_exported(self, client, metrics):
        post_report(client, "model=X&stationtype=Y&tempf=72.5&PASSKEY=abc")

        names = metrics.family_names()
        assert "ecowitt_relay_tempf_raw" in names
        for reserved in ("PASSKEY", "model", "stationtype"):
            assert f"ecowitt_relay_{reserved}_raw" not in names

    def test_different_stations_get_separate_series(self, client, metrics):
        post_report(client, "model=A&stationtype=S1&tempf=70")
        post_report(client, "model=B&stationtype=S2&tempf=50")

        assert series(metrics, "ecowitt_relay_tempf_raw") == {
            (("model", "A"), ("source_ip", "unknown"), ("stationType", "S1")): 70.0,
            (("model", "B"), ("source_ip", "unknown"), ("stationType", "S2")): 50.0,
        }

    def test_same_identity_is_updated_in_place(self, client, metrics):
        post_report(client, "model=A&stationtype=S1&tempf=70")
        post_report(client, "model=A&stationtype=S1&tempf=71.25")

        assert series(metrics, "ecowitt_relay_tempf_raw") == {
            (("model", "A"), ("source_ip", "unknown"), ("stationType", "S1")): 71.25,
        }

    def test_bad_value_only_drops_that_field(self, client, metrics):
        labels = {"model": "A", "stationType": "S1", "source_ip": "unknown"}

        response = post_report(client, "model=A&stationtype=S1&tempf=72.5&winddir=N&humidity=40")

        assert response.status_code == 200
        assert metrics.registry.get_sample_value("ecowitt_relay_tempf_raw", labels) == 72.5
        assert metrics.registry.get_sample_value("ecowitt_relay_humidity_raw", labels) == 40.0
        assert "ecowitt_relay_winddir_raw" not in metrics.family_names()

    def test_missing_identity_defaults_to_unknown(self, client, metrics):
        post_report(client, "model=&tempf=1")

        labels = {"model": "unknown", "stationType": "unknown", "source_ip": "unknown"}
        assert metrics.registry.get_sample_value("ecowitt_relay_tempf_raw", labels) == 1.0

    def test_source_ip_comes_from_proxy_header(self, client, metrics):
        post_report(client, "model=A&stationtype=S1&tempf=1", headers={"X-Real-IP": "10.0.0.7"})

        labels = {"model": "A", "stationType": "S1", "source_ip": "10.0.0.7"}
        assert metrics.registry.get_sample_value("ecowitt_relay_tempf_raw", labels) == 1.0
        assert metrics.registry.get_sample_value("ecowitt_relay_report_count_total", labels) == 1.0


# =============================================================================
# REPORT COUNTER AND SOURCE-IP TRACKING
# =============================================================================

class TestReportCounter:

    def test_counter_counts_reports_per_station(self, client, metrics):
        post_report(client, "model=A&stationtype=S1&tempf=1")
        post_report(client, "model=A&stationtype=S1")
        post_report(client, "model=B&stationtype=S1&tempf=1")

        a = {"model": "A", "stationType": "S1", "source_ip": "unknown"}
        b = {"model": "B", "stationType": "S1", "source_ip": "unknown"}
        assert metrics.registry.get_sample_value("ecowitt_relay_report_count_total", a) == 2.0
        assert metrics.registry.get_sample_value("ecowitt_relay_report_count_total", b) == 1.0

    def test_tracking_off_drops_source_ip_and_counter(self, metrics, terminator):
        app = create_app(
            Settings(process_metrics=False, track_source_ip=False),
            metrics=metrics,
            terminate=terminator,
        )
        client = TestClient(app)

        post_report(client, "model=X&stationtype=Y&tempf=72.5&PASSKEY=abc", headers={"X-Real-IP": "1.2.3.4"})

        assert metrics.family_names() == ["ecowitt_relay_tempf_raw"]
        exposition = client.get("/metrics").text
        assert 'ecowitt_relay_tempf_raw{model="X",stationType="Y"} 72.5' in exposition


# =============================================================================
# REJECTED AND MALFORMED REQUESTS
# =============================================================================

class TestRejectedRequests:

    @pytest.mark.parametrize("body", [
        "tempf=%zz",
        "tempf=72.5;humidity=40",
        b"model=\xff\xfe&tempf=1",
    ])
    def test_malformed_body_is_acknowledged_but_ignored(self, client, metrics, app, body):
        response = post_report(client, body)

        assert response.status_code == 200
        assert metrics.family_names() == []
        assert app.state.monitor.count == 0

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_non_post_is_not_allowed(self, client, metrics, app, method):
        response = client.request(method, "/data/report/", content="tempf=1")

        assert response.status_code == 405
        assert metrics.family_names() == []
        assert app.state.monitor.count == 0

    @pytest.mark.parametrize("path", ["/data/report", "/data/report/", "/data/report/gw1100"])
    def test_report_path_matches_by_prefix(self, client, metrics, path):
        response = post_report(client, "tempf=1", path=path)

        assert response.status_code == 200
        assert "ecowitt_relay_tempf_raw" in metrics.family_names()

    @pytest.mark.parametrize("path", ["/", "/data", "/weatherstation/updateweatherstation.php"])
    def test_unknown_path_is_not_found(self, client, path):
        assert client.get(path).status_code == 404
        assert client.post(path, content="tempf=1").status_code == 404

    @pytest.mark.parametrize("method", ["HEAD", "TRACE", "OPTIONS"])
    def test_unknown_path_is_not_found_for_any_method(self, client, method):
        assert client.request(method, "/nothing").status_code == 404

    def test_body_read_failure_is_server_error(self, app, metrics):
        async def disconnect():
            return {"type": "http.disconnect"}

        request = Request(
            {
                "type": "http",
                "method": "POST",
                "path": "/data/report/",
                "query_string": b"",
                "headers": [(b"content-type", b"application/x-www-form-urlencoded")],
                "app": app,
            },
            receive=disconnect,
        )

        response = asyncio.run(receive_report(request, ingestor=app.state.ingestor))

        assert response.status_code == 500
        assert metrics.family_names() == []
        assert app.state.monitor.count == 0

    def test_fatal_registration_error_terminates(self, terminator):
        registry = CollectorRegistry()
        Counter("ecowitt_relay_tempf_raw", "Clashing collector", registry=registry)
        app = create_app(
            Settings(process_metrics=False),
            metrics=MetricsRegistry(registry=registry),
            terminate=terminator,
        )

        response = post_report(TestClient(app), "tempf=1")

        assert response.status_code == 500
        assert terminator.statuses == [1]


# =============================================================================
# METRICS AND HEALTH ENDPOINTS
# =============================================================================

class TestExposition:

    def test_metrics_endpoint_serves_text_format(self, client):
        post_report(client, "model=X&stationtype=Y&tempf=72.5")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "# TYPE ecowitt_relay_tempf_raw gauge" in response.text
        assert "# TYPE ecowitt_relay_report_count_total counter" in response.text

        lines = [line for line in response.text.splitlines() if line.startswith("ecowitt_relay_tempf_raw{")]
        assert len(lines) == 1
        labels, value = lines[0][len("ecowitt_relay_tempf_raw{"):].split("} ")
        assert sorted(labels.split(",")) == ['model="X"', 'source_ip="unknown"', 'stationType="Y"']
        assert float(value) == 72.5

    @pytest.mark.parametrize("method", ["GET", "POST", "HEAD"])
    def test_metrics_answers_any_method(self, client, method):
        assert client.request(method, "/metrics").status_code == 200

    def test_health_reports_activity(self, client):
        post_report(client, "tempf=1")
        post_report(client, "not%valid")

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["reports_received"] == 1
        assert body["restart_policy"] is None
