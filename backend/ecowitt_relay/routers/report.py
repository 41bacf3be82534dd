"""
Report Router
=============

The endpoint Ecowitt stations push to.

Configure the station (WS View / Ecowitt app -> Customized) with:
  Protocol: Ecowitt
  Path:     /data/report/
  Port:     8080

Endpoints:
  POST /data/report
  POST /data/report/{anything}

Other methods on these paths get 405. The station is always answered 200 once
the body has been read, even if the body turns out to be unusable.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from ecowitt_relay.errors import MetricRegistrationError
from ecowitt_relay.services import ReportIngestor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["report"])

ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def get_ingestor(request: Request) -> ReportIngestor:
    """The ingestor owned by the running application."""
    return request.app.state.ingestor


def log_request(request: Request) -> None:
    uri = request.url.path
    if request.url.query:
        uri += f"?{request.url.query}"
    logger.info(f"received request: {request.method} {uri}")
    logger.info(f"received headers: {dict(request.headers)}")


@router.api_route("/data/report", methods=ANY_METHOD, include_in_schema=False)
@router.api_route("/data/report/{rest:path}", methods=ANY_METHOD, summary="Receive a station report")
async def receive_report(request: Request, ingestor: ReportIngestor = Depends(get_ingestor)):
    """
    Accept a form-encoded Ecowitt report and update the gauges.

    **Body**
    - model, stationtype: station identity, used as labels
    - PASSKEY, dateutc, freq: dropped
    - anything else: numeric measurement, exported as ecowitt_relay_<field>_raw
    """
    if request.method != "POST":
        log_request(request)
        return Response(status_code=405)

    try:
        body = await request.body()
    except Exception as e:
        logger.error(f"failed to read body stream: {e}")
        return Response(status_code=500)

    log_request(request)
    logger.info(f"received report: '{body.decode('utf-8', errors='replace')}'")

    source_ip = request.headers.get(ingestor.source_ip_header)
    try:
        ingestor.ingest(body, source_ip)
    except MetricRegistrationError:
        logger.critical("failed to register metric", exc_info=True)
        request.app.state.terminate(1)
        return Response(status_code=500)

    return Response(status_code=200)
