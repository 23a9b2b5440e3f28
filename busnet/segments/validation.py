from typing import List, NamedTuple, Optional, Sequence, Tuple

from pydantic import BaseModel

from busnet.exceptions import ChainIntegrityError, ValidationError


class ChainLink(NamedTuple):
    """The parts of a segment that chain validation looks at"""
    segment_order: int
    from_location: str
    to_location: str


class ChainViolation(BaseModel):
    """Chain validation error details"""
    error_code: str
    error_message: str
    segment_order: Optional[int] = None


def normalize_location(name: str) -> str:
    return " ".join((name or "").split()).lower()


class SegmentChainValidator:
    """Checks a route's segment list for order contiguity and chain continuity"""

    def collect_violations(self, segments: Sequence) -> List[ChainViolation]:
        """Return every violation found in ``segments`` (any objects with
        ``segment_order``, ``from_location`` and ``to_location``)"""
        violations = []
        ordered = sorted(segments, key=lambda s: s.segment_order)

        seen = set()
        for segment in ordered:
            if segment.segment_order in seen:
                violations.append(ChainViolation(
                    error_code="DUPLICATE_ORDER",
                    error_message=f"Segment order {segment.segment_order} is used more than once",
                    segment_order=segment.segment_order,
                ))
            seen.add(segment.segment_order)

        expected = list(range(1, len(ordered) + 1))
        actual = [s.segment_order for s in ordered]
        if not violations and actual != expected:
            violations.append(ChainViolation(
                error_code="NON_CONTIGUOUS_ORDER",
                error_message=f"Segment orders must run 1..{len(ordered)} without gaps, got {actual}",
            ))

        for segment in ordered:
            if normalize_location(segment.from_location) == normalize_location(segment.to_location):
                violations.append(ChainViolation(
                    error_code="ZERO_LENGTH_SEGMENT",
                    error_message=f"Segment {segment.segment_order} starts and ends at '{segment.from_location}'",
                    segment_order=segment.segment_order,
                ))

        for prev, curr in zip(ordered, ordered[1:]):
            if normalize_location(prev.to_location) != normalize_location(curr.from_location):
                violations.append(ChainViolation(
                    error_code="BROKEN_CHAIN",
                    error_message=(
                        f"Segment {curr.segment_order} starts at '{curr.from_location}' "
                        f"but segment {prev.segment_order} ends at '{prev.to_location}'"
                    ),
                    segment_order=curr.segment_order,
                ))

        return violations

    def validate_chain(self, segments: Sequence) -> None:
        """Raise ChainIntegrityError describing every violation, if any"""
        violations = self.collect_violations(segments)
        if violations:
            raise ChainIntegrityError("; ".join(v.error_message for v in violations))


def validate_search_terms(origin: str, destination: str) -> Tuple[str, str]:
    """Normalize search terms; identical or blank endpoints are rejected"""
    origin_key = normalize_location(origin)
    destination_key = normalize_location(destination)

    if not origin_key:
        raise ValidationError("Origin is required", field="origin")
    if not destination_key:
        raise ValidationError("Destination is required", field="destination")
    if origin_key == destination_key:
        raise ValidationError("Origin and destination cannot be the same", field="destination")

    return origin_key, destination_key
