import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    Text,
    JSON,
    Uuid,
    Index,
)
from sqlalchemy.orm import declarative_base, relationship


Base = declarative_base()


def default_uuid():
    return uuid.uuid4()


# Booking states that hold a vehicle for their date range
ACTIVE_BOOKING_STATUSES = ("confirmed", "ongoing")


class User(Base):
    __tablename__ = "rentx_users"

    id = Column(Uuid, primary_key=True, default=default_uuid)
    name = Column(String(128), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    address = Column(String(512), nullable=True)
    role = Column(String(16), nullable=False, default="user")  # user|admin
    is_verified = Column(Boolean, nullable=False, default=False)
    otp = Column(String(6), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    vehicles = relationship("Vehicle", back_populates="owner")
    bookings = relationship("Booking", back_populates="user")


class Vehicle(Base):
    __tablename__ = "rentx_vehicles"

    id = Column(Uuid, primary_key=True, default=default_uuid)
    owner_user_id = Column(Uuid, ForeignKey("rentx_users.id"), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    brand = Column(String(64), nullable=False)
    model = Column(String(64), nullable=False)
    year = Column(Integer, nullable=False)
    type = Column(String(16), nullable=False)  # sedan|suv|hatchback|luxury|economy
    seats = Column(Integer, nullable=False)
    transmission = Column(String(16), nullable=False)  # manual|automatic
    fuel_type = Column(String(16), nullable=False)  # petrol|diesel|electric|hybrid
    price_per_day = Column(Float, nullable=False)
    price_per_km = Column(Float, nullable=False)
    registration_number = Column(String(32), nullable=False, unique=True)
    images = Column(JSON, nullable=False, default=list)
    features = Column(JSON, nullable=False, default=list)
    city = Column(String(64), nullable=False)
    district = Column(String(64), nullable=False)
    state = Column(String(64), nullable=False)
    address = Column(String(512), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    insurance_provider = Column(String(128), nullable=True)
    insurance_policy_number = Column(String(64), nullable=True)
    insurance_expiry = Column(Date, nullable=True)
    rc_book_url = Column(String(512), nullable=True)
    registration_certificate_url = Column(String(512), nullable=True)
    insurance_certificate_url = Column(String(512), nullable=True)
    pollution_certificate_url = Column(String(512), nullable=True)
    status = Column(String(16), nullable=False, default="pending")  # pending|approved|rejected
    rejection_reason = Column(String(512), nullable=True)
    availability = Column(Boolean, nullable=False, default=True)
    commission_rate = Column(Float, nullable=False, default=200)
    total_earnings = Column(Float, nullable=False, default=0)
    total_bookings = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="vehicles")
    bookings = relationship("Booking", back_populates="vehicle")


class Booking(Base):
    __tablename__ = "rentx_bookings"
    __table_args__ = (
        Index("ix_rentx_bookings_vehicle_window", "vehicle_id", "booking_status", "start_date", "end_date"),
    )

    id = Column(Uuid, primary_key=True, default=default_uuid)
    user_id = Column(Uuid, ForeignKey("rentx_users.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("rentx_vehicles.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    pickup_location = Column(JSON, nullable=False, default=dict)
    dropoff_location = Column(JSON, nullable=False, default=dict)
    total_days = Column(Integer, nullable=False)
    total_distance = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False)
    driver_charge = Column(Float, nullable=False, default=0)
    payment_method = Column(String(16), nullable=False)  # cash|online
    payment_status = Column(String(16), nullable=False, default="pending")  # pending|paid|failed
    booking_status = Column(String(16), nullable=False, default="confirmed")  # pending|confirmed|ongoing|completed|cancelled
    pricing_type = Column(String(8), nullable=False, default="perDay")  # perDay|perKm
    estimated_distance = Column(Float, nullable=False, default=0)
    driver_required = Column(Boolean, nullable=False, default=False)
    special_requests = Column(Text, nullable=True)
    invoice_number = Column(String(48), nullable=False, unique=True)
    booking_code = Column(String(48), nullable=False, unique=True)
    commission_generated = Column(Boolean, nullable=False, default=False)
    commission_amount = Column(Float, nullable=False, default=200)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="bookings")
    vehicle = relationship("Vehicle", back_populates="bookings")
    commission = relationship("Commission", back_populates="booking", uselist=False)


class Commission(Base):
    __tablename__ = "rentx_commissions"

    id = Column(Uuid, primary_key=True, default=default_uuid)
    vehicle_owner_id = Column(Uuid, ForeignKey("rentx_users.id"), nullable=False, index=True)
    booking_id = Column(Uuid, ForeignKey("rentx_bookings.id"), nullable=False, unique=True)
    vehicle_id = Column(Uuid, ForeignKey("rentx_vehicles.id"), nullable=False)
    commission_amount = Column(Float, nullable=False, default=200)
    status = Column(String(16), nullable=False, default="pending")  # pending|paid|cancelled
    paid_at = Column(DateTime, nullable=True)
    payment_method = Column(String(16), nullable=True)  # bank_transfer|upi|cash
    transaction_id = Column(String(128), nullable=True)
    notes = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    booking = relationship("Booking", back_populates="commission")
    vehicle = relationship("Vehicle")
    vehicle_owner = relationship("User")


class SequenceCounter(Base):
    __tablename__ = "rentx_sequence_counters"

    name = Column(String(16), primary_key=True)  # INV|BID
    value = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
