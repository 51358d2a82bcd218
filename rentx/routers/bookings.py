from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from .. import booking_engine, commissions
from ..auth import get_current_user
from ..config import settings
from ..database import get_db
from ..errors import VehicleUnavailable
from ..models import Booking, Commission, User, Vehicle
from ..notifications import booking_payload, notify
from ..pricing import quote
from ..schemas import (
    BookingCreateIn,
    BookingOut,
    BookingRenterOut,
    BookingsListOut,
    BookingVehicleOut,
    CommissionOut,
    EarningsOut,
    QuoteOut,
)
from ..utils.ids import as_uuid


router = APIRouter(prefix="/bookings", tags=["bookings"])


def booking_out(b: Booking) -> BookingOut:
    u, v = b.user, b.vehicle
    return BookingOut(
        id=str(b.id),
        booking_code=b.booking_code,
        invoice_number=b.invoice_number,
        user=BookingRenterOut(id=str(u.id), name=u.name, email=u.email, phone=u.phone) if u else None,
        vehicle=BookingVehicleOut(
            id=str(v.id), name=v.name, brand=v.brand, model=v.model, registration_number=v.registration_number,
        ) if v else None,
        start_date=b.start_date,
        end_date=b.end_date,
        pickup_location=b.pickup_location or {},
        dropoff_location=b.dropoff_location or {},
        total_days=b.total_days,
        total_distance=b.total_distance,
        total_amount=b.total_amount,
        driver_charge=b.driver_charge,
        payment_method=b.payment_method,
        payment_status=b.payment_status,
        booking_status=b.booking_status,
        pricing_type=b.pricing_type,
        estimated_distance=b.estimated_distance,
        driver_required=bool(b.driver_required),
        special_requests=b.special_requests,
        commission_generated=bool(b.commission_generated),
        commission_amount=b.commission_amount,
        created_at=b.created_at,
    )


def commission_out(c: Commission) -> CommissionOut:
    return CommissionOut(
        id=str(c.id),
        vehicle_owner_id=str(c.vehicle_owner_id),
        booking_id=str(c.booking_id),
        vehicle_id=str(c.vehicle_id),
        invoice_number=c.booking.invoice_number if c.booking else None,
        commission_amount=c.commission_amount,
        status=c.status,
        paid_at=c.paid_at,
        payment_method=c.payment_method,
        transaction_id=c.transaction_id,
        notes=c.notes,
        created_at=c.created_at,
    )


def _vehicle_id(raw: str) -> UUID:
    vid = as_uuid(raw)
    if not isinstance(vid, UUID):
        raise VehicleUnavailable("Vehicle not found")
    return vid


def _location(loc) -> dict | None:
    return loc.model_dump(exclude_none=True) if loc is not None else None


@router.post("/quote", response_model=QuoteOut)
def quote_booking(payload: BookingCreateIn, db: Session = Depends(get_db)):
    v = db.get(Vehicle, _vehicle_id(payload.vehicle_id))
    if v is None or v.status != "approved":
        raise VehicleUnavailable("Vehicle not found")
    q = quote(
        price_per_day=v.price_per_day,
        price_per_km=v.price_per_km,
        start=payload.start_date,
        end=payload.end_date,
        pickup=_location(payload.pickup_location),
        dropoff=_location(payload.dropoff_location),
        pricing_type=payload.pricing_type,
        estimated_distance=payload.estimated_distance,
        driver_required=payload.driver_required,
        driver_charge_per_day=settings.DRIVER_CHARGE_PER_DAY,
        include_driver_charge=settings.DRIVER_CHARGE_INCLUDED,
    )
    return QuoteOut(
        total_days=q.total_days,
        total_distance=q.total_distance,
        day_charges=q.day_charges,
        distance_charges=q.distance_charges,
        driver_charge=q.driver_charge,
        driver_charge_included=settings.DRIVER_CHARGE_INCLUDED,
        total_amount=q.total_amount,
    )


@router.post("", response_model=BookingOut)
def create_booking(
    payload: BookingCreateIn,
    bg: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    b = booking_engine.create_booking(
        db,
        renter_id=user.id,
        vehicle_id=_vehicle_id(payload.vehicle_id),
        start_date=payload.start_date,
        end_date=payload.end_date,
        pickup_location=_location(payload.pickup_location),
        dropoff_location=_location(payload.dropoff_location),
        payment_method=payload.payment_method,
        pricing_type=payload.pricing_type,
        estimated_distance=payload.estimated_distance,
        driver_required=payload.driver_required,
        special_requests=payload.special_requests,
    )
    out = booking_out(b)
    bg.add_task(notify, "booking.created", booking_payload(b))
    return out


@router.get("/mine", response_model=BookingsListOut)
def my_bookings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = booking_engine.list_for_renter(db, user.id)
    return BookingsListOut(bookings=[booking_out(b) for b in rows], total=len(rows))


@router.get("/owner", response_model=BookingsListOut)
def owner_bookings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = booking_engine.list_for_owner(db, user.id)
    return BookingsListOut(bookings=[booking_out(b) for b in rows], total=len(rows))


@router.get("/earnings", response_model=EarningsOut)
def my_earnings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = commissions.list_for_owner(db, user.id)
    t = commissions.totals(db, owner_id=user.id)
    return EarningsOut(
        commissions=[commission_out(c) for c in rows],
        total_earnings=t["total_paid"],
        pending_earnings=t["total_pending"],
        total_commissions=t["count"],
    )


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: UUID, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return booking_out(booking_engine.get_booking(db, booking_id, user))


@router.put("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: UUID,
    bg: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    b = booking_engine.cancel_booking(db, booking_id, user.id)
    out = booking_out(b)
    bg.add_task(notify, "booking.cancelled", booking_payload(b))
    return out
