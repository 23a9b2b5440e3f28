"""Shared test fixtures for the segment pricing engine."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from busnet import models  # noqa: F401
from busnet.database import Base, get_db
from busnet.main import app
from busnet.models import Route, RouteSegment, RouteStop, SegmentPriceVariation


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    """API client sharing the test session"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_route(db):
    """Return a function that persists a route, optionally with segments."""

    def _make(origin, destination, segments=None, **fields):
        route = Route(
            origin=origin,
            destination=destination,
            via=fields.pop("via", None),
            distance=Decimal(str(fields.pop("distance", 0))),
            duration=fields.pop("duration", 0),
            price=Decimal(str(fields.pop("price", 0))),
            departure_time=fields.pop("departure_time", None),
            active=fields.pop("active", True),
            segment_enabled=bool(segments),
        )
        db.add(route)
        db.flush()
        for index, (from_location, to_location, distance, price) in enumerate(segments or []):
            db.add(RouteSegment(
                route_id=route.id,
                segment_order=index + 1,
                from_location=from_location,
                to_location=to_location,
                distance_km=Decimal(str(distance)),
                duration_minutes=int(distance),
                base_price=Decimal(str(price)),
            ))
        db.commit()
        db.refresh(route)
        return route

    return _make


@pytest.fixture
def fort_portal_route(make_route):
    """Kampala -> Mityana -> Mubende -> Fort Portal, 300 km, 40000 UGX."""
    return make_route(
        "Kampala", "Fort Portal",
        segments=[
            ("Kampala", "Mityana", 75, 10000),
            ("Mityana", "Mubende", 100, 15000),
            ("Mubende", "Fort Portal", 125, 15000),
        ],
        via="Mityana,Mubende",
        distance=300,
        duration=300,
        price=40000,
        departure_time="08:00",
    )


@pytest.fixture
def add_variation(db):
    """Return a function that attaches a price variation to a segment."""

    def _add(segment, variation_type, adjustment, adjustment_type="percentage", dates=None, active=True):
        variation = SegmentPriceVariation(
            segment_id=segment.id,
            variation_type=variation_type,
            price_adjustment=Decimal(str(adjustment)),
            adjustment_type=adjustment_type,
            applies_to_dates=dates or {"kind": "weekly", "days": ["saturday", "sunday"]},
            active=active,
        )
        db.add(variation)
        db.commit()
        db.refresh(variation)
        db.refresh(segment)
        return variation

    return _add


@pytest.fixture
def add_stops(db):
    """Return a function that records legacy cumulative stops on a route."""

    def _add(route, stops):
        for order, (name, distance, price, duration) in enumerate(stops, start=1):
            db.add(RouteStop(
                route_id=route.id,
                stop_name=name,
                distance_from_origin=Decimal(str(distance)),
                price_from_origin=Decimal(str(price)),
                duration_from_origin=duration,
                order=order,
            ))
        db.commit()
        db.refresh(route)
        return route

    return _add
