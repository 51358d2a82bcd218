"""Commission ledger: one referral fee per booking on a user-owned vehicle."""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from .config import settings
from .errors import InvalidTransition, NotFound
from .models import Booking, Commission, User, Vehicle


log = logging.getLogger("rentx.commissions")

PAYOUT_METHODS = ("bank_transfer", "upi", "cash")


def create_for_booking(db: Session, booking: Booking, vehicle: Vehicle) -> Commission:
    """Record a pending commission and bump the vehicle's counters.

    Runs inside the booking's transaction; callers only invoke it for vehicles
    whose owner has the ``user`` role.
    """
    # An unset or zero rate falls back to the flat default
    amount = vehicle.commission_rate or settings.COMMISSION_DEFAULT_AMOUNT
    c = Commission(
        vehicle_owner_id=vehicle.owner_user_id,
        booking_id=booking.id,
        vehicle_id=vehicle.id,
        commission_amount=amount,
        status="pending",
    )
    db.add(c)
    # SQL-side increments so concurrent writers do not lose updates
    vehicle.total_bookings = Vehicle.total_bookings + 1
    vehicle.total_earnings = Vehicle.total_earnings + amount
    booking.commission_generated = True
    booking.commission_amount = amount
    db.flush()
    log.info("commission created owner=%s booking=%s amount=%s", vehicle.owner_user_id, booking.id, amount)
    return c


def mark_paid(
    db: Session,
    commission_id: UUID,
    payment_method: str = "bank_transfer",
    transaction_id: str | None = None,
    notes: str | None = None,
) -> Commission:
    c = db.query(Commission).filter(Commission.id == commission_id).with_for_update().one_or_none()
    if c is None:
        raise NotFound("Commission not found")
    if c.status != "pending":
        raise InvalidTransition(f"Commission is {c.status}; only pending commissions can be paid")
    c.status = "paid"
    c.paid_at = datetime.utcnow()
    c.payment_method = payment_method or "bank_transfer"
    c.transaction_id = transaction_id
    c.notes = notes
    db.flush()
    log.info("commission paid id=%s method=%s", c.id, c.payment_method)
    return c


def cancel_for_booking(db: Session, booking: Booking) -> Commission | None:
    c = db.query(Commission).filter(Commission.booking_id == booking.id).one_or_none()
    if c is None or c.status in ("paid", "cancelled"):
        return c
    c.status = "cancelled"
    db.flush()
    log.info("commission cancelled id=%s booking=%s", c.id, booking.id)
    return c


def _paid_pending_columns():
    paid = func.coalesce(func.sum(case((Commission.status == "paid", Commission.commission_amount), else_=0)), 0)
    pending = func.coalesce(func.sum(case((Commission.status == "pending", Commission.commission_amount), else_=0)), 0)
    return paid, pending


def totals(db: Session, owner_id: UUID | None = None) -> dict:
    paid, pending = _paid_pending_columns()
    q = db.query(paid, pending, func.count(Commission.id))
    if owner_id is not None:
        q = q.filter(Commission.vehicle_owner_id == owner_id)
    total_paid, total_pending, count = q.one()
    return {"total_paid": float(total_paid or 0), "total_pending": float(total_pending or 0), "count": int(count or 0)}


def summary_by_status(db: Session) -> list[dict]:
    rows = (
        db.query(Commission.status, func.count(Commission.id), func.coalesce(func.sum(Commission.commission_amount), 0))
        .group_by(Commission.status)
        .order_by(Commission.status.asc())
        .all()
    )
    return [{"status": s, "count": int(n), "total_amount": float(t)} for s, n, t in rows]


def summary_by_owner(db: Session) -> list[dict]:
    paid, pending = _paid_pending_columns()
    rows = (
        db.query(User.id, User.name, User.email, func.count(Commission.id), paid, pending)
        .join(Commission, Commission.vehicle_owner_id == User.id)
        .group_by(User.id, User.name, User.email)
        .order_by(User.name.asc())
        .all()
    )
    return [
        {
            "owner_id": str(uid),
            "owner_name": name,
            "owner_email": email,
            "count": int(n),
            "total_paid": float(p or 0),
            "total_pending": float(q or 0),
        }
        for uid, name, email, n, p, q in rows
    ]


def list_for_owner(db: Session, owner_id: UUID) -> list[Commission]:
    return (
        db.query(Commission)
        .options(joinedload(Commission.booking))
        .filter(Commission.vehicle_owner_id == owner_id)
        .order_by(Commission.created_at.desc())
        .all()
    )


def search(db: Session, *, status: str | None = None, page: int = 1, limit: int = 20) -> tuple[list[Commission], int]:
    q = db.query(Commission)
    if status:
        q = q.filter(Commission.status == status)
    total = q.count()
    rows = (
        q.options(joinedload(Commission.booking))
        .order_by(Commission.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )
    return rows, total
