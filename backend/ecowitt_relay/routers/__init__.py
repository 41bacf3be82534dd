"""
Routers Package
===============

Routers direct incoming requests to the right place.
"""

from .report import router as report_router, get_ingestor
from .metrics import router as metrics_router
from .system import router as system_router, fallback_router

__all__ = [
    "report_router",
    "metrics_router",
    "system_router",
    "fallback_router",
    "get_ingestor",
]
