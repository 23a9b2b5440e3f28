"""
Domain exceptions for the segment pricing engine
"""


class BusNetError(Exception):
    """Base exception for the segment pricing engine"""

    code = "BUSNET_ERROR"

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.field:
            detail["field"] = self.field
        return detail


class ValidationError(BusNetError):
    """Raised when a request or input record is malformed"""

    code = "VALIDATION_ERROR"


class NotFoundError(BusNetError):
    """Raised when a route, segment, variation or booking does not exist"""

    code = "NOT_FOUND"


class ChainIntegrityError(BusNetError):
    """Raised when a write would break segment order or chain continuity"""

    code = "CHAIN_INTEGRITY"


class MigrationPartialFailure(BusNetError):
    """Raised when a single route cannot be migrated; recorded, never fatal to a batch"""

    code = "MIGRATION_FAILED"

    def __init__(self, route_id: int, message: str):
        super().__init__(f"Route {route_id}: {message}")
        self.route_id = route_id
        self.reason = message
