import logging
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import List, Optional, Sequence

from busnet.exceptions import ValidationError
from busnet.segments.schemas import CumulativeStop, SegmentDraft, SegmentHop

logger = logging.getLogger(__name__)

DISTANCE_QUANT = Decimal("0.01")
PRICE_QUANT = Decimal("1")
ZERO = Decimal("0")


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_distance(value, rounding=ROUND_HALF_UP) -> Decimal:
    return _to_decimal(value).quantize(DISTANCE_QUANT, rounding=rounding)


def round_price(value, rounding=ROUND_HALF_UP) -> Decimal:
    return _to_decimal(value).quantize(PRICE_QUANT, rounding=rounding)


def round_minutes(value, rounding=ROUND_HALF_UP) -> int:
    return int(_to_decimal(value).quantize(Decimal("1"), rounding=rounding))


class SegmentDecomposer:
    """Turns an ordered stop chain into atomic, priced segment drafts.

    Three input shapes are supported, each an explicit code path:

    - ``equal_split``: only route totals are known; they are divided evenly.
    - ``from_cumulative``: per-stop cumulative distance/price (and optionally
      duration) are known; each segment is the delta between consecutive stops.
    - ``from_hops``: per-hop values are already known and only need rounding
      and sanity checks.

    Rounding is distance to 2 decimals, duration to whole minutes and price to
    whole currency units. Equal splits put the remainder on the last segment;
    cumulative chains are rounded as running totals. Either way the segment sums
    reconcile with the route totals.
    """

    # ------------------------------------------------------------------
    # Input checks
    # ------------------------------------------------------------------
    @staticmethod
    def validate_locations(locations: Sequence[str]) -> List[str]:
        """Return trimmed location names or raise ValidationError"""
        if len(locations) < 2:
            raise ValidationError("At least 2 locations are required to build segments", field="locations")

        cleaned = []
        for index, name in enumerate(locations):
            name = (name or "").strip()
            if not name:
                raise ValidationError(f"Location at position {index + 1} is blank", field="locations")
            if cleaned and cleaned[-1].lower() == name.lower():
                raise ValidationError(
                    f"Consecutive locations cannot be the same ('{name}' at position {index + 1})",
                    field="locations",
                )
            cleaned.append(name)
        return cleaned

    # ------------------------------------------------------------------
    # Equal split
    # ------------------------------------------------------------------
    def equal_split(
        self,
        locations: Sequence[str],
        total_distance,
        total_duration,
        total_price,
    ) -> List[SegmentDraft]:
        """Divide route totals evenly across ``len(locations) - 1`` segments.

        Leading segments are rounded down so the remainder that lands on the
        last segment is never negative.
        """
        names = self.validate_locations(locations)
        count = len(names) - 1

        distance_total = round_distance(max(_to_decimal(total_distance), ZERO))
        duration_total = round_minutes(max(_to_decimal(total_duration), ZERO))
        price_total = round_price(max(_to_decimal(total_price), ZERO))

        distance_each = round_distance(distance_total / count, ROUND_DOWN)
        duration_each = round_minutes(Decimal(duration_total) / count, ROUND_DOWN)
        price_each = round_price(price_total / count, ROUND_DOWN)

        drafts = []
        for i in range(count):
            is_last = i == count - 1
            drafts.append(SegmentDraft(
                segment_order=i + 1,
                from_location=names[i],
                to_location=names[i + 1],
                distance_km=distance_total - distance_each * (count - 1) if is_last else distance_each,
                duration_minutes=duration_total - duration_each * (count - 1) if is_last else duration_each,
                base_price=price_total - price_each * (count - 1) if is_last else price_each,
            ))
        return drafts

    # ------------------------------------------------------------------
    # Delta from cumulative
    # ------------------------------------------------------------------
    def from_cumulative(
        self,
        stops: Sequence[CumulativeStop],
        total_duration=None,
    ) -> List[SegmentDraft]:
        """Build segments from cumulative per-stop values.

        ``stops`` must include the origin (cumulative zero) and the destination
        (route totals). A negative delta is clamped to zero and the segment is
        flagged for manual review instead of failing the whole route.
        """
        names = self.validate_locations([stop.name for stop in stops])
        count = len(names) - 1

        distances, price_deltas, flagged = [], [], []
        for i in range(count):
            prev, curr = stops[i], stops[i + 1]
            distance = _to_decimal(curr.distance_from_origin) - _to_decimal(prev.distance_from_origin)
            price = _to_decimal(curr.price_from_origin) - _to_decimal(prev.price_from_origin)
            review = False
            if distance < 0:
                logger.warning(
                    "Negative distance delta %s between '%s' and '%s'; clamped to 0",
                    distance, names[i], names[i + 1],
                )
                distance, review = ZERO, True
            if price < 0:
                logger.warning(
                    "Negative price delta %s between '%s' and '%s'; clamped to 0",
                    price, names[i], names[i + 1],
                )
                price, review = ZERO, True
            distances.append(distance)
            price_deltas.append(price)
            flagged.append(review)

        durations = self._cumulative_durations(stops, distances, total_duration, flagged, names)

        distances = self._round_running_total(distances, round_distance)
        price_deltas = self._round_running_total(price_deltas, round_price)
        durations = [int(d) for d in self._round_running_total(durations, lambda v: Decimal(round_minutes(v)))]

        return [
            SegmentDraft(
                segment_order=i + 1,
                from_location=names[i],
                to_location=names[i + 1],
                distance_km=distances[i],
                duration_minutes=durations[i],
                base_price=price_deltas[i],
                needs_review=flagged[i],
            )
            for i in range(count)
        ]

    def _cumulative_durations(
        self,
        stops: Sequence[CumulativeStop],
        distances: List[Decimal],
        total_duration,
        flagged: List[bool],
        names: List[str],
    ) -> List[Decimal]:
        """Per-segment durations from cumulative minutes, or apportioned by distance"""
        if all(stop.duration_from_origin is not None for stop in stops):
            durations = []
            for i in range(len(distances)):
                delta = _to_decimal(stops[i + 1].duration_from_origin) - _to_decimal(stops[i].duration_from_origin)
                if delta < 0:
                    logger.warning(
                        "Negative duration delta %s between '%s' and '%s'; clamped to 0",
                        delta, names[i], names[i + 1],
                    )
                    delta, flagged[i] = ZERO, True
                durations.append(delta)
            return durations

        total = max(_to_decimal(total_duration), ZERO)
        distance_sum = sum(distances, ZERO)
        if distance_sum == 0:
            return [total / len(distances)] * len(distances)
        return [total * d / distance_sum for d in distances]

    @staticmethod
    def _round_running_total(raw_values: List[Decimal], rounder) -> List[Decimal]:
        """Round the running totals and return their differences.

        Values are non-negative, so rounded totals never decrease and each
        segment stays >= 0 while the segments sum to the rounded overall total.
        """
        rounded, previous, running = [], ZERO, ZERO
        for value in raw_values:
            running += value
            total = rounder(running)
            rounded.append(total - previous)
            previous = total
        return rounded

    # ------------------------------------------------------------------
    # Explicit hops
    # ------------------------------------------------------------------
    def from_hops(self, origin: str, hops: Sequence[SegmentHop]) -> List[SegmentDraft]:
        """Build segments from explicit per-hop values.

        ``hops[i]`` describes travel from the previous location to
        ``hops[i].to_location``.
        """
        names = self.validate_locations([origin] + [hop.to_location for hop in hops])

        drafts = []
        for i, hop in enumerate(hops):
            values = {
                "distance_km": _to_decimal(hop.distance_km),
                "duration_minutes": _to_decimal(hop.duration_minutes),
                "base_price": _to_decimal(hop.base_price),
            }
            review = False
            for key, value in values.items():
                if value < 0:
                    logger.warning(
                        "Negative %s %s for hop '%s' -> '%s'; clamped to 0",
                        key, value, names[i], names[i + 1],
                    )
                    values[key], review = ZERO, True
            drafts.append(SegmentDraft(
                segment_order=i + 1,
                from_location=names[i],
                to_location=names[i + 1],
                distance_km=round_distance(values["distance_km"]),
                duration_minutes=round_minutes(values["duration_minutes"]),
                base_price=round_price(values["base_price"]),
                needs_review=review,
            ))
        return drafts


def build_cumulative_chain(
    origin: str,
    destination: str,
    stops: Sequence[CumulativeStop],
    total_distance,
    total_price,
    total_duration: Optional[int] = None,
) -> List[CumulativeStop]:
    """Wrap intermediate cumulative stops with the origin and destination endpoints"""
    with_duration = all(stop.duration_from_origin is not None for stop in stops)
    return [
        CumulativeStop(
            name=origin,
            distance_from_origin=ZERO,
            price_from_origin=ZERO,
            duration_from_origin=0 if with_duration else None,
        ),
        *stops,
        CumulativeStop(
            name=destination,
            distance_from_origin=_to_decimal(total_distance),
            price_from_origin=_to_decimal(total_price),
            duration_from_origin=total_duration if with_duration else None,
        ),
    ]
