"""
Metrics Router
==============

/metrics - Prometheus text exposition of every series seen so far. Any method
is answered, as scrapers and ad-hoc tools do not all use GET.

Example output:
  # HELP ecowitt_relay_tempf_raw Raw value of the tempf field reported by the station
  # TYPE ecowitt_relay_tempf_raw gauge
  ecowitt_relay_tempf_raw{model="GW1100A",source_ip="10.0.0.7",stationType="EasyWeatherV1.6.4"} 72.5
"""

from fastapi import APIRouter, Request, Response

from ecowitt_relay.routers.report import ANY_METHOD

router = APIRouter(tags=["observability"])


@router.api_route("/metrics", methods=ANY_METHOD, include_in_schema=False)
async def metrics(request: Request) -> Response:
    """Expose the relay's metrics for a Prometheus scraper."""
    payload, content_type = request.app.state.metrics.expose()
    return Response(content=payload, media_type=content_type)
