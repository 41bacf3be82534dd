"""
System Router
=============

GET /health      - Liveness information for humans and probes
*   /{anything}  - 404 for everything no other router claims (still logged)

The fallback router must be included last.
"""

import logging

from fastapi import APIRouter, Request, Response

from ecowitt_relay.routers.report import ANY_METHOD, log_request

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])
fallback_router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check if the relay is running and how many reports it has seen."
)
async def health(request: Request):
    """Health check endpoint."""
    state = request.app.state
    policy = state.restart_policy
    return {
        "status": "healthy",
        "reports_received": state.monitor.count,
        "restart_policy": policy.name if policy else None,
        "ttl_seconds": policy.ttl if policy else None,
    }


@fallback_router.api_route("/{path:path}", methods=ANY_METHOD, include_in_schema=False)
async def not_found(request: Request):
    log_request(request)
    return Response(status_code=404)
