"""
Date specifications for fare variations.

A variation's ``applies_to_dates`` is one of three tagged shapes:

- ``{"kind": "weekly", "days": ["saturday", "sunday"]}``
- ``{"kind": "dates", "dates": ["2026-12-25", "2026-12-26"]}``
- ``{"kind": "range", "start": "2026-12-20", "end": "2027-01-05"}``

Older records carry the untagged forms ``{"days": [...]}``, ``{"dates": [...]}``
or ``{"start": ..., "end": ...}``; ``parse_date_spec`` accepts both and always
returns the tagged model, and ``matches`` is the only place that interprets one.
"""

from datetime import date
from typing import List, Literal, Union, Any, Dict

from pydantic import BaseModel, ValidationError as PydanticValidationError, field_validator, model_validator

from busnet.exceptions import ValidationError

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class RecurringWeekly(BaseModel):
    kind: Literal["weekly"] = "weekly"
    days: List[str]

    @field_validator("days")
    @classmethod
    def validate_days(cls, v):
        if not v:
            raise ValueError("days must not be empty")
        normalized = []
        for day in v:
            name = str(day).strip().lower()
            if name not in WEEKDAYS:
                raise ValueError(f"unknown weekday '{day}'")
            if name not in normalized:
                normalized.append(name)
        return sorted(normalized, key=WEEKDAYS.index)


class ExplicitDates(BaseModel):
    kind: Literal["dates"] = "dates"
    dates: List[date]

    @field_validator("dates")
    @classmethod
    def validate_dates(cls, v):
        if not v:
            raise ValueError("dates must not be empty")
        return sorted(set(v))


class DateRange(BaseModel):
    kind: Literal["range"] = "range"
    start: date
    end: date

    @model_validator(mode="after")
    def validate_order(self):
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self


DateSpec = Union[RecurringWeekly, ExplicitDates, DateRange]

_SHAPES = {
    "weekly": (RecurringWeekly, {"days"}),
    "dates": (ExplicitDates, {"dates"}),
    "range": (DateRange, {"start", "end"}),
}


def _detect_kind(payload: Dict[str, Any]) -> str:
    keys = set(payload) - {"kind"}
    if "kind" in payload:
        if not isinstance(payload["kind"], str):
            raise ValidationError("Date spec kind must be a string", field="applies_to_dates")
        return payload["kind"]
    for kind, (_, shape_keys) in _SHAPES.items():
        if keys == shape_keys:
            return kind
    raise ValidationError(
        "applies_to_dates must contain exactly one of 'days', 'dates' or 'start'/'end'",
        field="applies_to_dates",
    )


def parse_date_spec(payload) -> DateSpec:
    """Parse a stored or submitted ``applies_to_dates`` value into a tagged spec"""
    if isinstance(payload, (RecurringWeekly, ExplicitDates, DateRange)):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError("applies_to_dates must be an object", field="applies_to_dates")

    kind = _detect_kind(payload)
    if kind not in _SHAPES:
        raise ValidationError(f"Unknown date spec kind '{kind}'", field="applies_to_dates")

    model, shape_keys = _SHAPES[kind]
    extra = set(payload) - shape_keys - {"kind"}
    if extra:
        raise ValidationError(
            f"Unexpected keys for '{kind}' date spec: {', '.join(sorted(extra))}",
            field="applies_to_dates",
        )

    try:
        return model(**{k: v for k, v in payload.items() if k != "kind"})
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(f"Malformed {kind} date spec: {messages}", field="applies_to_dates")


def matches(spec: DateSpec, travel_date: date) -> bool:
    """True when ``travel_date`` falls inside the spec"""
    if isinstance(spec, RecurringWeekly):
        return WEEKDAYS[travel_date.weekday()] in spec.days
    if isinstance(spec, ExplicitDates):
        return travel_date in spec.dates
    if isinstance(spec, DateRange):
        return spec.start <= travel_date <= spec.end
    raise TypeError(f"Unsupported date spec: {type(spec).__name__}")


def to_storage(spec: DateSpec) -> Dict[str, Any]:
    """JSON-safe tagged form for the database column"""
    return spec.model_dump(mode="json")
