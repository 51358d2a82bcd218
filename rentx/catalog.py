"""Vehicle catalog: submissions, admin review, browsing and owner maintenance."""
import logging
from datetime import date
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session, joinedload

from .config import settings
from .errors import AccessDenied, InvalidTransition, NotFound, ValidationFailed
from .models import ACTIVE_BOOKING_STATUSES, Booking, Commission, User, Vehicle
from .schemas import VehicleCreateIn, VehicleUpdateIn


log = logging.getLogger("rentx.catalog")


def submit_vehicle(db: Session, owner: User, payload: VehicleCreateIn) -> Vehicle:
    is_admin = owner.role == "admin"
    docs = payload.documents
    if not is_admin and (not docs.rc_book or not docs.registration_certificate):
        raise ValidationFailed("RC Book and Registration Certificate are required for vehicle submission")
    if payload.commission_rate is not None and not is_admin:
        raise AccessDenied("Only admins can set a commission rate")
    reg = payload.registration_number.strip().upper()
    if db.query(Vehicle.id).filter(Vehicle.registration_number == reg).first() is not None:
        raise ValidationFailed("Registration number already listed", code="registration_number_taken")
    ins = payload.insurance_details
    v = Vehicle(
        owner_user_id=owner.id,
        name=payload.name,
        brand=payload.brand,
        model=payload.model,
        year=payload.year,
        type=payload.type,
        seats=payload.seats,
        transmission=payload.transmission,
        fuel_type=payload.fuel_type,
        price_per_day=payload.price_per_day,
        price_per_km=payload.price_per_km,
        registration_number=reg,
        images=list(payload.images),
        features=list(payload.features),
        city=payload.city,
        district=payload.district,
        state=payload.state,
        address=payload.address,
        lat=payload.coordinates.lat if payload.coordinates else None,
        lng=payload.coordinates.lng if payload.coordinates else None,
        insurance_provider=ins.provider if ins else None,
        insurance_policy_number=ins.policy_number if ins else None,
        insurance_expiry=ins.expiry_date if ins else None,
        rc_book_url=docs.rc_book,
        registration_certificate_url=docs.registration_certificate,
        insurance_certificate_url=docs.insurance_certificate,
        pollution_certificate_url=docs.pollution_certificate,
        # admin listings go live immediately
        status="approved" if is_admin else "pending",
        availability=True,
        commission_rate=payload.commission_rate if payload.commission_rate is not None else settings.COMMISSION_DEFAULT_AMOUNT,
    )
    db.add(v)
    db.flush()
    log.info("vehicle submitted id=%s owner=%s status=%s", v.id, owner.id, v.status)
    return v


def get_vehicle(db: Session, vehicle_id: UUID) -> Vehicle:
    v = db.query(Vehicle).options(joinedload(Vehicle.owner)).filter(Vehicle.id == vehicle_id).one_or_none()
    if v is None:
        raise NotFound("Vehicle not found")
    return v


def browse(
    db: Session,
    *,
    city: str | None = None,
    district: str | None = None,
    state: str | None = None,
    type: str | None = None,
    seats: int | None = None,
    transmission: str | None = None,
    fuel_type: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Vehicle]:
    query = db.query(Vehicle).options(joinedload(Vehicle.owner)).filter(Vehicle.status == "approved")
    if city:
        query = query.filter(Vehicle.city.ilike(f"%{city}%"))
    if district:
        query = query.filter(Vehicle.district.ilike(f"%{district}%"))
    if state:
        query = query.filter(Vehicle.state.ilike(f"%{state}%"))
    if type:
        query = query.filter(Vehicle.type == type)
    if seats is not None:
        query = query.filter(Vehicle.seats == seats)
    if transmission:
        query = query.filter(Vehicle.transmission == transmission)
    if fuel_type:
        query = query.filter(Vehicle.fuel_type == fuel_type)
    if min_price is not None:
        query = query.filter(Vehicle.price_per_day >= min_price)
    if max_price is not None:
        query = query.filter(Vehicle.price_per_day <= max_price)
    if start_date and end_date:
        busy = select(Booking.vehicle_id).where(
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
            and_(Booking.start_date <= end_date, Booking.end_date >= start_date),
        )
        query = query.filter(~Vehicle.id.in_(busy))
    else:
        query = query.filter(Vehicle.availability.is_(True))
    return query.order_by(Vehicle.created_at.desc()).all()


def list_owned(db: Session, owner_id: UUID) -> list[Vehicle]:
    return db.query(Vehicle).filter(Vehicle.owner_user_id == owner_id).order_by(Vehicle.created_at.desc()).all()


def list_by_status(db: Session, status: str | None = None) -> list[Vehicle]:
    q = db.query(Vehicle).options(joinedload(Vehicle.owner))
    if status:
        q = q.filter(Vehicle.status == status)
    return q.order_by(Vehicle.created_at.desc()).all()


def has_active_bookings(db: Session, vehicle_id: UUID) -> bool:
    return (
        db.query(Booking.id)
        .filter(Booking.vehicle_id == vehicle_id, Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES))
        .first()
        is not None
    )


def _require_owner_or_admin(v: Vehicle, actor: User) -> None:
    if v.owner_user_id != actor.id and actor.role != "admin":
        raise AccessDenied("Only the owner or an admin can modify this vehicle")


def update_vehicle(db: Session, vehicle_id: UUID, actor: User, payload: VehicleUpdateIn) -> Vehicle:
    v = get_vehicle(db, vehicle_id)
    _require_owner_or_admin(v, actor)
    is_admin = actor.role == "admin"
    if payload.commission_rate is not None and not is_admin:
        raise AccessDenied("Only admins can change the commission rate")
    if payload.availability is not None and payload.availability != v.availability:
        if not is_admin and has_active_bookings(db, v.id):
            raise InvalidTransition("Availability is managed by bookings while a booking is active")
        v.availability = payload.availability
    for attr in ("name", "seats", "price_per_day", "price_per_km", "city", "district", "state", "address", "commission_rate"):
        value = getattr(payload, attr)
        if value is not None:
            setattr(v, attr, value)
    if payload.images is not None:
        v.images = list(payload.images)
    if payload.features is not None:
        v.features = list(payload.features)
    if payload.documents is not None:
        docs = payload.documents
        if docs.rc_book is not None:
            v.rc_book_url = docs.rc_book
        if docs.registration_certificate is not None:
            v.registration_certificate_url = docs.registration_certificate
        if docs.insurance_certificate is not None:
            v.insurance_certificate_url = docs.insurance_certificate
        if docs.pollution_certificate is not None:
            v.pollution_certificate_url = docs.pollution_certificate
    db.flush()
    return v


def review_vehicle(db: Session, vehicle_id: UUID, status: str, rejection_reason: str | None = None) -> Vehicle:
    if status not in ("approved", "rejected"):
        raise ValidationFailed("Invalid status")
    v = get_vehicle(db, vehicle_id)
    v.status = status
    v.rejection_reason = rejection_reason if status == "rejected" else None
    db.flush()
    log.info("vehicle reviewed id=%s status=%s", v.id, status)
    return v


def purge_vehicle(db: Session, v: Vehicle) -> None:
    booking_ids = [bid for (bid,) in db.query(Booking.id).filter(Booking.vehicle_id == v.id).all()]
    db.query(Commission).filter(Commission.vehicle_id == v.id).delete(synchronize_session="fetch")
    if booking_ids:
        db.query(Commission).filter(Commission.booking_id.in_(booking_ids)).delete(synchronize_session="fetch")
        db.query(Booking).filter(Booking.id.in_(booking_ids)).delete(synchronize_session="fetch")
    db.expire(v)
    db.delete(v)
    db.flush()


def delete_vehicle(db: Session, vehicle_id: UUID, actor: User) -> None:
    v = get_vehicle(db, vehicle_id)
    _require_owner_or_admin(v, actor)
    if has_active_bookings(db, v.id):
        raise InvalidTransition("Vehicle has confirmed or ongoing bookings")
    purge_vehicle(db, v)
    log.info("vehicle deleted id=%s by=%s", vehicle_id, actor.id)
