from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import catalog
from ..auth import get_current_user
from ..database import get_db
from ..models import User, Vehicle
from ..schemas import OwnerSummaryOut, VehicleCreateIn, VehicleOut, VehiclesListOut, VehicleUpdateIn


router = APIRouter(prefix="/vehicles", tags=["vehicles"])


def vehicle_out(v: Vehicle, with_owner: bool = True) -> VehicleOut:
    owner = None
    if with_owner and v.owner is not None:
        owner = OwnerSummaryOut(id=str(v.owner.id), name=v.owner.name, email=v.owner.email, phone=v.owner.phone)
    return VehicleOut(
        id=str(v.id),
        owner=owner,
        name=v.name,
        brand=v.brand,
        model=v.model,
        year=v.year,
        type=v.type,
        seats=v.seats,
        transmission=v.transmission,
        fuel_type=v.fuel_type,
        price_per_day=v.price_per_day,
        price_per_km=v.price_per_km,
        registration_number=v.registration_number,
        images=list(v.images or []),
        features=list(v.features or []),
        city=v.city,
        district=v.district,
        state=v.state,
        address=v.address,
        status=v.status,
        rejection_reason=v.rejection_reason,
        availability=bool(v.availability),
        commission_rate=float(v.commission_rate or 0),
        total_earnings=float(v.total_earnings or 0),
        total_bookings=int(v.total_bookings or 0),
        documents={
            "rc_book": v.rc_book_url,
            "registration_certificate": v.registration_certificate_url,
            "insurance_certificate": v.insurance_certificate_url,
            "pollution_certificate": v.pollution_certificate_url,
        },
        created_at=v.created_at,
    )


def vehicles_list(rows: list[Vehicle], with_owner: bool = True) -> VehiclesListOut:
    return VehiclesListOut(vehicles=[vehicle_out(v, with_owner) for v in rows], total=len(rows))


@router.post("", response_model=VehicleOut)
def submit_vehicle(payload: VehicleCreateIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    v = catalog.submit_vehicle(db, user, payload)
    return vehicle_out(v, with_owner=False)


@router.get("", response_model=VehiclesListOut)
def browse_vehicles(
    city: str | None = None,
    district: str | None = None,
    state: str | None = None,
    type: str | None = None,
    seats: int | None = Query(None, ge=1),
    transmission: str | None = None,
    fuel_type: str | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    rows = catalog.browse(
        db,
        city=city,
        district=district,
        state=state,
        type=type,
        seats=seats,
        transmission=transmission,
        fuel_type=fuel_type,
        min_price=min_price,
        max_price=max_price,
        start_date=start_date,
        end_date=end_date,
    )
    return vehicles_list(rows)


@router.get("/mine", response_model=VehiclesListOut)
def my_vehicles(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return vehicles_list(catalog.list_owned(db, user.id), with_owner=False)


@router.get("/{vehicle_id}", response_model=VehicleOut)
def get_vehicle(vehicle_id: UUID, db: Session = Depends(get_db)):
    return vehicle_out(catalog.get_vehicle(db, vehicle_id))


@router.put("/{vehicle_id}", response_model=VehicleOut)
def update_vehicle(
    vehicle_id: UUID,
    payload: VehicleUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return vehicle_out(catalog.update_vehicle(db, vehicle_id, user, payload))


@router.delete("/{vehicle_id}")
def delete_vehicle(vehicle_id: UUID, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    catalog.delete_vehicle(db, vehicle_id, user)
    return {"detail": "deleted"}
