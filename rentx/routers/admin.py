import logging
import math
from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from .. import booking_engine, catalog, commissions, reports
from ..auth import require_admin
from ..database import get_db
from ..errors import AccessDenied, NotFound
from ..models import Booking, Commission, User, Vehicle
from ..notifications import booking_payload, notify
from ..schemas import (
    BookingOut,
    BookingsListOut,
    BookingStatusIn,
    CommissionOut,
    CommissionPayIn,
    CommissionsListOut,
    UserOut,
    UserStatusIn,
    VehicleOut,
    VehicleReviewIn,
    VehiclesListOut,
)
from .auth import user_out
from .bookings import booking_out, commission_out
from .vehicles import vehicle_out, vehicles_list


router = APIRouter(prefix="/admin", tags=["admin"])
log = logging.getLogger("rentx.admin")


def _pages(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit)) if total else 0


# --- Users ---

@router.get("/users", response_model=List[UserOut])
def list_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [user_out(u) for u in db.query(User).order_by(User.created_at.desc()).all()]


@router.put("/users/{user_id}/status", response_model=UserOut)
def set_user_status(
    user_id: UUID,
    payload: UserStatusIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    u = db.get(User, user_id)
    if u is None:
        raise NotFound("User not found")
    u.is_verified = payload.is_verified
    db.flush()
    return user_out(u)


@router.delete("/users/{user_id}")
def delete_user(user_id: UUID, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == admin.id:
        raise AccessDenied("Admins cannot delete their own account")
    u = db.get(User, user_id)
    if u is None:
        raise NotFound("User not found")
    rented = db.query(Booking.id, Booking.vehicle_id).filter(Booking.user_id == u.id).all()
    booking_ids = [bid for bid, _ in rented]
    if booking_ids:
        db.query(Commission).filter(Commission.booking_id.in_(booking_ids)).delete(synchronize_session="fetch")
        db.query(Booking).filter(Booking.id.in_(booking_ids)).delete(synchronize_session="fetch")
    for v in db.query(Vehicle).filter(Vehicle.owner_user_id == u.id).all():
        catalog.purge_vehicle(db, v)
    db.query(Commission).filter(Commission.vehicle_owner_id == u.id).delete(synchronize_session="fetch")
    db.expire(u)
    db.delete(u)
    db.flush()
    # Other owners' vehicles the renter was holding
    for vid in {vid for _, vid in rented}:
        v = db.get(Vehicle, vid)
        if v is not None:
            booking_engine.refresh_availability(db, v)
    log.info("user deleted id=%s bookings=%d by=%s", user_id, len(booking_ids), admin.id)
    return {"detail": "deleted"}


# --- Vehicles ---

@router.get("/vehicles", response_model=VehiclesListOut)
def list_vehicles(
    status: str | None = Query(None, description="pending|approved|rejected"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return vehicles_list(catalog.list_by_status(db, status))


@router.get("/vehicles/pending", response_model=VehiclesListOut)
def pending_vehicles(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return vehicles_list(catalog.list_by_status(db, "pending"))


@router.put("/vehicles/{vehicle_id}/status", response_model=VehicleOut)
def review_vehicle(
    vehicle_id: UUID,
    payload: VehicleReviewIn,
    bg: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    v = catalog.review_vehicle(db, vehicle_id, payload.status, payload.rejection_reason)
    out = vehicle_out(v)
    bg.add_task(notify, "vehicle.reviewed", {
        "vehicle_id": out.id,
        "name": v.name,
        "status": v.status,
        "rejection_reason": v.rejection_reason,
        "owner_email": v.owner.email if v.owner else None,
    })
    return out


# --- Bookings ---

@router.get("/bookings", response_model=BookingsListOut)
def list_bookings(
    status: str | None = None,
    payment_method: str | None = None,
    payment_status: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, gt=0, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows, total = booking_engine.search(
        db,
        status=status,
        payment_method=payment_method,
        payment_status=payment_status,
        created_from=from_date,
        created_to=to_date,
        page=page,
        limit=limit,
    )
    return BookingsListOut(
        bookings=[booking_out(b) for b in rows],
        total=total,
        total_pages=_pages(total, limit),
        current_page=page,
    )


@router.put("/bookings/{booking_id}/status", response_model=BookingOut)
def set_booking_status(
    booking_id: UUID,
    payload: BookingStatusIn,
    bg: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    b = booking_engine.set_status(db, booking_id, payload.status)
    out = booking_out(b)
    if b.booking_status == "cancelled":
        bg.add_task(notify, "booking.cancelled", booking_payload(b))
    return out


# --- Commissions ---

@router.get("/commissions", response_model=CommissionsListOut)
def list_commissions(
    status: str | None = Query(None, description="pending|paid|cancelled"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, gt=0, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows, total = commissions.search(db, status=status, page=page, limit=limit)
    return CommissionsListOut(
        commissions=[commission_out(c) for c in rows],
        total=total,
        total_pages=_pages(total, limit),
        current_page=page,
        summary=commissions.summary_by_status(db),
    )


@router.get("/commissions/owners")
def commissions_by_owner(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"owners": commissions.summary_by_owner(db)}


@router.put("/commissions/{commission_id}/pay", response_model=CommissionOut)
def pay_commission(
    commission_id: UUID,
    payload: CommissionPayIn,
    bg: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    c = commissions.mark_paid(
        db,
        commission_id,
        payment_method=payload.payment_method,
        transaction_id=payload.transaction_id,
        notes=payload.notes,
    )
    out = commission_out(c)
    bg.add_task(notify, "commission.paid", {
        "commission_id": out.id,
        "owner_id": out.vehicle_owner_id,
        "amount": out.commission_amount,
        "payment_method": out.payment_method,
        "transaction_id": out.transaction_id,
    })
    return out


# --- Reports ---

@router.get("/dashboard")
def dashboard(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return reports.dashboard(db)


@router.get("/reports/monthly-earnings")
def monthly_earnings(
    year: int | None = Query(None, ge=2000, le=2100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    year = year or date.today().year
    return {"year": year, "months": reports.monthly_earnings(db, year)}


@router.get("/analytics/travel")
def travel_analytics(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return reports.travel_analytics(db)


@router.get("/reports/bookings.csv")
def bookings_csv(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    body = reports.bookings_csv(db)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="bookings-{date.today().isoformat()}.csv"'},
    )
