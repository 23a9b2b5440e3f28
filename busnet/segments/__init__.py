"""
Route Segment Pricing Module

This module turns multi-stop bus routes into independently priced segments and
answers fare searches between any two stops on a route.
It includes:

- Segment decomposition from route totals, cumulative stop data or explicit hops
- Date-conditional fare variations (weekend, holiday, custom)
- Whole and partial route search with per-date fare resolution
- Migration of legacy single-price routes into segments
- Admin CRUD that keeps every route's segment chain continuous

Key Components:
- decomposer.py: Segment decomposition strategies
- date_specs.py: Tagged date specifications for fare variations
- fare_resolver.py: Fare variation precedence and price adjustment
- search.py: Segment path search and fare quotes
- migration.py: Legacy route migration job
- admin_service.py: Segment and variation CRUD with chain checks
- bulk_service.py: CSV export/import
- validation.py: Chain integrity and search request validation
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for request/response structures
"""

from .router import router
from .decomposer import SegmentDecomposer
from .fare_resolver import FareVariationResolver
from .search import SegmentPathSearch
from .migration import LegacyRouteMigrator
from .admin_service import SegmentAdminService
from .bulk_service import SegmentBulkService
from .validation import SegmentChainValidator
from .schemas import (
    SegmentDraft, FareQuote, SegmentPathItem, ResolvedSegmentFare,
    MigrationRequest, MigrationReport, MigrationRouteDetail
)

__all__ = [
    "router",
    "SegmentDecomposer",
    "FareVariationResolver",
    "SegmentPathSearch",
    "LegacyRouteMigrator",
    "SegmentAdminService",
    "SegmentBulkService",
    "SegmentChainValidator",
    "SegmentDraft",
    "FareQuote",
    "SegmentPathItem",
    "ResolvedSegmentFare",
    "MigrationRequest",
    "MigrationReport",
    "MigrationRouteDetail"
]
