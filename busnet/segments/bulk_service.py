import io
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from busnet.database import transaction
from busnet.exceptions import ValidationError
from busnet.models import Route, RouteSegment, RouteStop
from busnet.segments.schemas import StopImportResult

logger = logging.getLogger(__name__)

SEGMENT_EXPORT_COLUMNS = [
    "route_id", "segment_order", "from_location", "to_location",
    "distance_km", "duration_minutes", "base_price", "needs_review", "active_variations",
]
STOP_IMPORT_COLUMNS = {"route_id", "stop_name", "distance_from_origin", "price_from_origin", "order"}


class SegmentBulkService:
    """CSV export of segments and CSV/Excel import of legacy route stops"""

    def __init__(self, db: Session):
        self.db = db

    def export_segments(self, route_id: Optional[int] = None) -> bytes:
        query = self.db.query(RouteSegment)
        if route_id is not None:
            query = query.filter(RouteSegment.route_id == route_id)
        segments = query.order_by(RouteSegment.route_id, RouteSegment.segment_order).all()

        data = []
        for segment in segments:
            data.append({
                "route_id": segment.route_id,
                "segment_order": segment.segment_order,
                "from_location": segment.from_location,
                "to_location": segment.to_location,
                "distance_km": float(segment.distance_km),
                "duration_minutes": segment.duration_minutes,
                "base_price": float(segment.base_price),
                "needs_review": bool(segment.needs_review),
                "active_variations": sum(1 for v in segment.price_variations if v.active),
            })

        df = pd.DataFrame(data, columns=SEGMENT_EXPORT_COLUMNS)
        output = io.StringIO()
        df.to_csv(output, index=False)
        return output.getvalue().encode()

    def _read_frame(self, content: bytes, filename: str) -> pd.DataFrame:
        if not filename.endswith((".csv", ".xlsx")):
            raise ValidationError("Only CSV and Excel files are supported", field="file")

        try:
            if filename.endswith(".csv"):
                return pd.read_csv(io.StringIO(content.decode("utf-8")))
            return pd.read_excel(io.BytesIO(content))
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded", field="file")
        except Exception as e:
            raise ValidationError(f"Failed to read file: {e}", field="file") from e

    @staticmethod
    def _parse_amount(row, column: str) -> Decimal:
        value = row.get(column)
        if value is None or pd.isna(value):
            return Decimal("0")
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"{column} must be a number, got '{value}'")
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"{column} must be a non-negative number, got '{value}'")
        return amount

    @staticmethod
    def _parse_whole(row, column: str, minimum: int = 0) -> int:
        value = row.get(column)
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"{column} must be a whole number, got '{value}'")
        if not number.is_finite() or number != number.to_integral_value() or number < minimum:
            raise ValueError(f"{column} must be a whole number >= {minimum}, got '{value}'")
        return int(number)

    def import_route_stops(self, content: bytes, filename: str) -> StopImportResult:
        """Load legacy RouteStop rows; bad rows are reported, good rows committed together"""
        df = self._read_frame(content, filename)

        missing = STOP_IMPORT_COLUMNS - set(df.columns)
        if missing:
            raise ValidationError(f"Missing columns: {', '.join(sorted(missing))}", field="file")

        route_ids = {row[0] for row in self.db.query(Route.id).all()}
        taken = {(route_id, order) for route_id, order in self.db.query(RouteStop.route_id, RouteStop.order).all()}
        result = StopImportResult(total=len(df), imported=0)

        with transaction(self.db):
            for index, row in df.iterrows():
                if pd.isna(row.get("route_id")) or pd.isna(row.get("stop_name")) or pd.isna(row.get("order")):
                    result.errors.append(f"Row {index + 1}: route_id, stop_name and order are required")
                    continue

                try:
                    route_id = self._parse_whole(row, "route_id", minimum=1)
                    order = self._parse_whole(row, "order", minimum=1)
                    distance = self._parse_amount(row, "distance_from_origin")
                    price = self._parse_amount(row, "price_from_origin")
                    duration = row.get("duration_from_origin")
                    if duration is not None and not pd.isna(duration):
                        duration = self._parse_whole(row, "duration_from_origin")
                    else:
                        duration = None
                except ValueError as e:
                    result.errors.append(f"Row {index + 1}: {e}")
                    continue

                if route_id not in route_ids:
                    result.errors.append(f"Row {index + 1}: route {route_id} not found")
                    continue
                if (route_id, order) in taken:
                    result.errors.append(f"Row {index + 1}: route {route_id} already has a stop with order {order}")
                    continue
                taken.add((route_id, order))

                self.db.add(RouteStop(
                    route_id=route_id,
                    stop_name=str(row["stop_name"]).strip(),
                    distance_from_origin=distance,
                    price_from_origin=price,
                    duration_from_origin=duration,
                    order=order,
                ))
                result.imported += 1

        logger.info("Imported %d of %d route stop row(s)", result.imported, result.total)
        return result
