"""
Routes Module

Route records and the legacy cumulative stops used to migrate them into
segments. Segment pricing itself lives in ``busnet.segments``.
"""

from .router import router
from .service import RouteService

__all__ = ["router", "RouteService"]
