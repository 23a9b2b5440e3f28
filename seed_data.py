#!/usr/bin/env python3

from datetime import date
from decimal import Decimal

from busnet.database import SessionLocal, init_db
from busnet.models import (
    Booking, Route, RouteSegment, RouteStop, SegmentPriceVariation
)

def create_seed_data():
    init_db()
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for the bus network...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Booking).delete()
        db.query(SegmentPriceVariation).delete()
        db.query(RouteSegment).delete()
        db.query(RouteStop).delete()
        db.query(Route).delete()

        # 1. Segment-priced route
        print("Creating segment-enabled routes...")
        fort_portal = Route(
            origin="Kampala", destination="Fort Portal", via="Mityana,Mubende",
            distance=Decimal("300"), duration=300, price=Decimal("40000"),
            departure_time="08:00", active=True, segment_enabled=True
        )
        db.add(fort_portal)
        db.flush()

        segments = [
            RouteSegment(route_id=fort_portal.id, segment_order=1, from_location="Kampala", to_location="Mityana",
                         distance_km=Decimal("75"), duration_minutes=75, base_price=Decimal("10000")),
            RouteSegment(route_id=fort_portal.id, segment_order=2, from_location="Mityana", to_location="Mubende",
                         distance_km=Decimal("100"), duration_minutes=100, base_price=Decimal("15000")),
            RouteSegment(route_id=fort_portal.id, segment_order=3, from_location="Mubende", to_location="Fort Portal",
                         distance_km=Decimal("125"), duration_minutes=125, base_price=Decimal("15000")),
        ]
        db.add_all(segments)
        db.flush()

        # 2. Price variations
        print("Creating price variations...")
        variations = [
            SegmentPriceVariation(segment_id=segments[0].id, variation_type="weekend",
                                  price_adjustment=Decimal("20"), adjustment_type="percentage",
                                  applies_to_dates={"kind": "weekly", "days": ["saturday", "sunday"]}),
            SegmentPriceVariation(segment_id=segments[2].id, variation_type="holiday",
                                  price_adjustment=Decimal("5000"), adjustment_type="fixed",
                                  applies_to_dates={"kind": "dates", "dates": [date(2026, 12, 25).isoformat(), date(2026, 12, 26).isoformat()]}),
        ]
        db.add_all(variations)

        # 3. Legacy routes awaiting migration
        print("Creating legacy routes...")
        gulu = Route(
            origin="Kampala", destination="Gulu", via="Luwero,Nakasongola,Karuma",
            distance=Decimal("333"), duration=360, price=Decimal("35000"),
            departure_time="07:30"
        )
        mbarara = Route(
            origin="Kampala", destination="Mbarara",
            distance=Decimal("266"), duration=300, price=Decimal("30000"),
            departure_time="09:00"
        )
        mbale = Route(
            origin="Kampala", destination="Mbale", via="Jinja,Iganga,Tororo",
            distance=Decimal("245"), duration=270, price=Decimal("30000"),
            departure_time="06:45"
        )
        legacy_routes = [gulu, mbarara, mbale]
        db.add_all(legacy_routes)
        db.flush()

        stops = [
            RouteStop(route_id=mbale.id, stop_name="Jinja", distance_from_origin=Decimal("80"),
                      price_from_origin=Decimal("10000"), duration_from_origin=90, order=1),
            RouteStop(route_id=mbale.id, stop_name="Iganga", distance_from_origin=Decimal("120"),
                      price_from_origin=Decimal("15000"), duration_from_origin=135, order=2),
            RouteStop(route_id=mbale.id, stop_name="Tororo", distance_from_origin=Decimal("210"),
                      price_from_origin=Decimal("25000"), duration_from_origin=230, order=3),
        ]
        db.add_all(stops)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - 1 segment-enabled route with {len(segments)} segments")
        print(f"  - {len(variations)} price variations")
        print(f"  - {len(legacy_routes)} legacy routes")
        print(f"  - {len(stops)} legacy route stops")
        print("Run `python migrate_segments.py` to convert the legacy routes.")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
