"""Booking lifecycle: creation with conflict detection and pricing, cancellation,
admin status changes and the renter/owner/admin read paths."""
import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import and_
from sqlalchemy.orm import Session, joinedload

from . import commissions
from .config import settings
from .errors import (
    AccessDenied,
    BookingConflict,
    InvalidTransition,
    NotFound,
    RenterNotFound,
    ValidationFailed,
    VehicleUnavailable,
)
from .models import ACTIVE_BOOKING_STATUSES, Booking, User, Vehicle
from .pricing import quote
from .utils.ids import assign_numbers


log = logging.getLogger("rentx.bookings")

BOOKING_STATUSES = ("pending", "confirmed", "ongoing", "completed", "cancelled")
PAYMENT_METHODS = ("cash", "online")


def find_conflict(db: Session, vehicle_id: UUID, start: date, end: date, exclude_id: UUID | None = None) -> Booking | None:
    # overlap if (existing.start <= end) and (existing.end >= start)
    q = db.query(Booking).filter(
        Booking.vehicle_id == vehicle_id,
        Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
        and_(Booking.start_date <= end, Booking.end_date >= start),
    )
    if exclude_id is not None:
        q = q.filter(Booking.id != exclude_id)
    return q.order_by(Booking.start_date.asc()).first()


def vehicle_busy_on(db: Session, vehicle_id: UUID, day: date) -> bool:
    return (
        db.query(Booking.id)
        .filter(
            Booking.vehicle_id == vehicle_id,
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_date <= day,
            Booking.end_date >= day,
        )
        .first()
        is not None
    )


def refresh_availability(db: Session, vehicle: Vehicle, today: date | None = None) -> bool:
    """Set the availability flag from the bookings covering ``today``."""
    today = today or date.today()
    available = not vehicle_busy_on(db, vehicle.id, today)
    if vehicle.availability != available:
        vehicle.availability = available
        db.flush()
    return available


def create_booking(
    db: Session,
    *,
    renter_id: UUID,
    vehicle_id: UUID,
    start_date: date,
    end_date: date,
    pickup_location: dict | None,
    dropoff_location: dict | None,
    payment_method: str,
    pricing_type: str = "perDay",
    estimated_distance: float | None = None,
    driver_required: bool = False,
    special_requests: str | None = None,
    today: date | None = None,
) -> Booking:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationFailed("payment_method must be cash or online")
    if pricing_type not in ("perDay", "perKm"):
        raise ValidationFailed("pricing_type must be perDay or perKm")
    if end_date < start_date:
        raise ValidationFailed("end_date must not be before start_date")

    renter = db.get(User, renter_id)
    if renter is None:
        raise RenterNotFound("Renter not found")

    # Row lock serializes check-and-insert for the same vehicle
    vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).with_for_update().one_or_none()
    if vehicle is None:
        raise VehicleUnavailable("Vehicle not found")
    if vehicle.status != "approved" or not vehicle.availability:
        raise VehicleUnavailable("Vehicle is not available")

    clash = find_conflict(db, vehicle.id, start_date, end_date)
    if clash is not None:
        raise BookingConflict(
            f"Vehicle is already booked from {clash.start_date.isoformat()} to {clash.end_date.isoformat()}"
        )

    q = quote(
        price_per_day=vehicle.price_per_day,
        price_per_km=vehicle.price_per_km,
        start=start_date,
        end=end_date,
        pickup=pickup_location,
        dropoff=dropoff_location,
        pricing_type=pricing_type,
        estimated_distance=estimated_distance,
        driver_required=driver_required,
        driver_charge_per_day=settings.DRIVER_CHARGE_PER_DAY,
        include_driver_charge=settings.DRIVER_CHARGE_INCLUDED,
    )

    invoice_number, booking_code = assign_numbers(db)
    b = Booking(
        user_id=renter.id,
        vehicle_id=vehicle.id,
        start_date=start_date,
        end_date=end_date,
        pickup_location=pickup_location or {},
        dropoff_location=dropoff_location or {},
        total_days=q.total_days,
        total_distance=q.total_distance,
        total_amount=q.total_amount,
        driver_charge=q.driver_charge,
        payment_method=payment_method,
        # cash is collected at pickup
        payment_status="paid" if payment_method == "cash" else "pending",
        booking_status="confirmed",
        pricing_type=pricing_type,
        estimated_distance=float(estimated_distance or 0),
        driver_required=bool(driver_required),
        special_requests=special_requests,
        invoice_number=invoice_number,
        booking_code=booking_code,
        commission_generated=False,
        commission_amount=vehicle.commission_rate or settings.COMMISSION_DEFAULT_AMOUNT,
    )
    db.add(b)
    db.flush()

    today = today or date.today()
    if start_date <= today:
        vehicle.availability = False

    owner = db.get(User, vehicle.owner_user_id)
    if owner is not None and owner.role == "user":
        commissions.create_for_booking(db, b, vehicle)
    db.flush()
    log.info(
        "booking created id=%s code=%s vehicle=%s %s..%s total=%s",
        b.id, b.booking_code, vehicle.id, start_date, end_date, b.total_amount,
    )
    return b


def _load(db: Session, booking_id: UUID) -> Booking:
    b = (
        db.query(Booking)
        .options(joinedload(Booking.user), joinedload(Booking.vehicle))
        .filter(Booking.id == booking_id)
        .one_or_none()
    )
    if b is None:
        raise NotFound("Booking not found")
    return b


def cancel_booking(db: Session, booking_id: UUID, acting_user_id: UUID, today: date | None = None) -> Booking:
    b = _load(db, booking_id)
    if b.user_id != acting_user_id:
        raise AccessDenied("Only the renter can cancel this booking")
    if b.booking_status in ("completed", "cancelled"):
        raise InvalidTransition(f"Cannot cancel a {b.booking_status} booking")
    b.booking_status = "cancelled"
    db.flush()
    refresh_availability(db, b.vehicle, today)
    commissions.cancel_for_booking(db, b)
    log.info("booking cancelled id=%s by=%s", b.id, acting_user_id)
    return b


def set_status(db: Session, booking_id: UUID, new_status: str, today: date | None = None) -> Booking:
    """Admin override of the booking status."""
    if new_status not in BOOKING_STATUSES:
        raise ValidationFailed("Invalid booking status")
    b = _load(db, booking_id)
    previous = b.booking_status
    if new_status in ACTIVE_BOOKING_STATUSES and previous not in ACTIVE_BOOKING_STATUSES:
        clash = find_conflict(db, b.vehicle_id, b.start_date, b.end_date, exclude_id=b.id)
        if clash is not None:
            raise BookingConflict(f"Booking {clash.booking_code} already holds these dates")
    b.booking_status = new_status
    db.flush()
    if new_status == "completed":
        b.vehicle.availability = True
        db.flush()
    elif new_status == "cancelled":
        refresh_availability(db, b.vehicle, today)
        commissions.cancel_for_booking(db, b)
    log.info("booking status id=%s %s -> %s", b.id, previous, new_status)
    return b


def get_booking(db: Session, booking_id: UUID, acting_user: User) -> Booking:
    b = _load(db, booking_id)
    is_renter = b.user_id == acting_user.id
    is_vehicle_owner = b.vehicle is not None and b.vehicle.owner_user_id == acting_user.id
    if not (is_renter or is_vehicle_owner or acting_user.role == "admin"):
        raise AccessDenied("Access denied")
    return b


def list_for_renter(db: Session, renter_id: UUID) -> list[Booking]:
    return (
        db.query(Booking)
        .options(joinedload(Booking.vehicle))
        .filter(Booking.user_id == renter_id)
        .order_by(Booking.created_at.desc())
        .all()
    )


def list_for_owner(db: Session, owner_id: UUID) -> list[Booking]:
    return (
        db.query(Booking)
        .join(Vehicle, Vehicle.id == Booking.vehicle_id)
        .options(joinedload(Booking.user), joinedload(Booking.vehicle))
        .filter(Vehicle.owner_user_id == owner_id)
        .order_by(Booking.created_at.desc())
        .all()
    )


def search(
    db: Session,
    *,
    status: str | None = None,
    payment_method: str | None = None,
    payment_status: str | None = None,
    created_from: date | None = None,
    created_to: date | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    q = db.query(Booking)
    if status:
        q = q.filter(Booking.booking_status == status)
    if payment_method:
        q = q.filter(Booking.payment_method == payment_method)
    if payment_status:
        q = q.filter(Booking.payment_status == payment_status)
    if created_from:
        q = q.filter(Booking.created_at >= datetime.combine(created_from, time.min))
    if created_to:
        q = q.filter(Booking.created_at < datetime.combine(created_to + timedelta(days=1), time.min))
    total = q.count()
    rows = (
        q.options(joinedload(Booking.user), joinedload(Booking.vehicle))
        .order_by(Booking.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )
    return rows, total