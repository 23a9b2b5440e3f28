import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from busnet.exceptions import ValidationError
from busnet.models import RouteSegment, SegmentPriceVariation
from busnet.segments.date_specs import matches, parse_date_spec
from busnet.segments.decomposer import round_price
from busnet.segments.schemas import AppliedAdjustment, ResolvedSegmentFare

logger = logging.getLogger(__name__)

ADJUSTMENT_TYPES = ("percentage", "fixed")

# Higher wins. Only one variation is ever applied to a segment.
VARIATION_PRECEDENCE = {
    "holiday": 3,
    "weekend": 2,
    "custom": 1,
    "peak_season": 1,
}

VARIATION_REASONS = {
    "holiday": "Holiday surcharge",
    "weekend": "Weekend premium",
    "peak_season": "Peak season pricing",
}


def normalize_variation_type(value: str) -> str:
    name = (value or "").strip().lower()
    if name not in VARIATION_PRECEDENCE:
        raise ValidationError(
            f"Variation type must be one of: {', '.join(VARIATION_PRECEDENCE)}",
            field="variation_type",
        )
    return name


def normalize_adjustment_type(value: str) -> str:
    name = (value or "").strip().lower()
    if name not in ADJUSTMENT_TYPES:
        raise ValidationError(
            f"Adjustment type must be one of: {', '.join(ADJUSTMENT_TYPES)}",
            field="adjustment_type",
        )
    return name


def apply_adjustment(base_price, adjustment_type: str, price_adjustment) -> Decimal:
    """Apply one adjustment to a base price, floored at zero and rounded to whole units"""
    base = Decimal(str(base_price))
    adjustment = Decimal(str(price_adjustment))
    if adjustment_type == "percentage":
        price = base * (Decimal("1") + adjustment / Decimal("100"))
    elif adjustment_type == "fixed":
        price = base + adjustment
    else:
        raise ValidationError(f"Unknown adjustment type '{adjustment_type}'", field="adjustment_type")
    return max(round_price(price), Decimal("0"))


class FareVariationResolver:
    """Resolves a segment's price for a travel date.

    Among the active variations whose date spec matches, the highest tier wins
    (holiday > weekend > custom). Within a tier the most recently created
    variation (highest id) wins. Adjustments never stack.
    """

    def matching_variations(
        self,
        variations: Iterable[SegmentPriceVariation],
        travel_date: date,
    ) -> List[SegmentPriceVariation]:
        matched = []
        for variation in variations:
            if not variation.active:
                continue
            if (variation.adjustment_type or "").lower() not in ADJUSTMENT_TYPES:
                logger.warning(
                    "Skipping variation %s with unknown adjustment type '%s'",
                    variation.id, variation.adjustment_type,
                )
                continue
            try:
                spec = parse_date_spec(variation.applies_to_dates)
            except ValidationError as e:
                logger.warning("Skipping variation %s with malformed date spec: %s", variation.id, e.message)
                continue
            if matches(spec, travel_date):
                matched.append(variation)
        return matched

    def select_variation(
        self,
        variations: Iterable[SegmentPriceVariation],
    ) -> Optional[SegmentPriceVariation]:
        def rank(variation) -> Tuple[int, int]:
            tier = VARIATION_PRECEDENCE.get((variation.variation_type or "").lower(), 0)
            return tier, variation.id or 0

        candidates = list(variations)
        if not candidates:
            return None
        return max(candidates, key=rank)

    def resolve(self, segment: RouteSegment, travel_date: Optional[date] = None) -> ResolvedSegmentFare:
        base_price = Decimal(str(segment.base_price))

        if travel_date is None:
            return ResolvedSegmentFare(segment_id=segment.id, base_price=base_price, final_price=base_price)

        winner = self.select_variation(
            self.matching_variations(segment.price_variations, travel_date)
        )
        if winner is None:
            return ResolvedSegmentFare(segment_id=segment.id, base_price=base_price, final_price=base_price)

        adjustment_type = winner.adjustment_type.lower()
        final_price = apply_adjustment(base_price, adjustment_type, winner.price_adjustment)

        return ResolvedSegmentFare(
            segment_id=segment.id,
            base_price=base_price,
            final_price=final_price,
            adjustment=AppliedAdjustment(
                variation_id=winner.id,
                variation_type=winner.variation_type,
                adjustment_type=adjustment_type,
                price_adjustment=Decimal(str(winner.price_adjustment)),
                amount=final_price - base_price,
                reason=VARIATION_REASONS.get(winner.variation_type, "Special pricing"),
            ),
        )
