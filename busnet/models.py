from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from busnet.database import Base

# SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer, "sqlite")

# ================================
# Routes (owned by the operator collaborator)
# ================================
class Route(Base):
    __tablename__ = "routes"

    id = Column(BigIntId, primary_key=True, index=True)
    origin = Column(String(255), nullable=False, index=True)
    destination = Column(String(255), nullable=False, index=True)
    via = Column(Text)  # legacy comma-separated stopovers
    distance = Column(Numeric(10, 2), nullable=False, default=0)
    duration = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    departure_time = Column(String(5))  # "HH:MM"
    active = Column(Boolean, default=True, index=True)
    segment_enabled = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    segments = relationship(
        "RouteSegment",
        back_populates="route",
        order_by="RouteSegment.segment_order",
        cascade="all, delete-orphan",
    )
    stops = relationship(
        "RouteStop",
        back_populates="route",
        order_by="RouteStop.order",
        cascade="all, delete-orphan",
    )
    bookings = relationship("Booking", back_populates="route")

    @property
    def stopovers(self):
        """Ordered stopover names parsed from the legacy ``via`` column"""
        if not self.via:
            return []
        return [name.strip() for name in self.via.split(",") if name.strip()]

# ================================
# Route Segments & Price Variations
# ================================
class RouteSegment(Base):
    __tablename__ = "route_segments"
    __table_args__ = (
        UniqueConstraint("route_id", "segment_order", name="uq_route_segment_order"),
    )

    id = Column(BigIntId, primary_key=True, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    segment_order = Column(Integer, nullable=False)
    from_location = Column(String(255), nullable=False, index=True)
    to_location = Column(String(255), nullable=False, index=True)
    distance_km = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False, default=0)
    base_price = Column(Numeric(12, 2), nullable=False, default=0)
    needs_review = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    route = relationship("Route", back_populates="segments")
    price_variations = relationship(
        "SegmentPriceVariation",
        back_populates="segment",
        order_by="SegmentPriceVariation.id",
        cascade="all, delete-orphan",
    )

class SegmentPriceVariation(Base):
    __tablename__ = "segment_price_variations"

    id = Column(BigIntId, primary_key=True, index=True)
    segment_id = Column(BigInteger, ForeignKey("route_segments.id", ondelete="CASCADE"), nullable=False, index=True)
    variation_type = Column(String(50), nullable=False)
    price_adjustment = Column(Numeric(12, 2), nullable=False)
    adjustment_type = Column(String(20), nullable=False, default="percentage")
    applies_to_dates = Column(JSON, nullable=False)
    active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    segment = relationship("RouteSegment", back_populates="price_variations")

# ================================
# Legacy Route Stops (migration input only)
# ================================
class RouteStop(Base):
    __tablename__ = "route_stops"

    id = Column(BigIntId, primary_key=True, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    stop_name = Column(String(255), nullable=False)
    distance_from_origin = Column(Numeric(10, 2), nullable=False, default=0)
    price_from_origin = Column(Numeric(12, 2), nullable=False, default=0)
    duration_from_origin = Column(Integer)
    order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    route = relationship("Route", back_populates="stops")

# ================================
# Bookings (fare quote snapshots)
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigIntId, primary_key=True, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    passenger_name = Column(String(255), nullable=False)
    travel_date = Column(Date, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    fare_quote = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    route = relationship("Route", back_populates="bookings")
