from dataclasses import dataclass
from datetime import date
from math import asin, ceil, cos, floor, radians, sin, sqrt

from .errors import InvalidDistance, ValidationFailed


EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> int:
    """Great-circle distance in whole kilometres (half rounds up)."""
    d_lat = radians(lat2 - lat1)
    d_lng = radians(lng2 - lng1)
    a = sin(d_lat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(d_lng / 2) ** 2
    distance = 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(a)))
    return int(floor(distance + 0.5))


def rental_days(start: date, end: date) -> int:
    if end < start:
        raise ValidationFailed("end_date must not be before start_date")
    seconds = (end - start).total_seconds()
    return max(1, int(ceil(seconds / 86400)))


def _coords(location: dict | None) -> tuple[float, float] | None:
    if not location:
        return None
    c = location.get("coordinates") or {}
    lat, lng = c.get("lat"), c.get("lng")
    if lat is None or lng is None:
        return None
    return float(lat), float(lng)


@dataclass
class Quote:
    total_days: int
    total_distance: float
    day_charges: float
    distance_charges: float
    driver_charge: float
    total_amount: float


def quote(
    *,
    price_per_day: float,
    price_per_km: float,
    start: date,
    end: date,
    pickup: dict | None,
    dropoff: dict | None,
    pricing_type: str = "perDay",
    estimated_distance: float | None = None,
    driver_required: bool = False,
    driver_charge_per_day: float = 0,
    include_driver_charge: bool = False,
) -> Quote:
    days = rental_days(start, end)
    driver_charge = driver_charge_per_day * days if driver_required else 0
    if pricing_type == "perKm":
        if estimated_distance is None or estimated_distance <= 0:
            raise InvalidDistance("estimated_distance must be greater than zero for perKm pricing")
        distance = float(estimated_distance)
        day_charges = 0.0
        distance_charges = price_per_km * distance
    else:
        distance = 0.0
        a, b = _coords(pickup), _coords(dropoff)
        if a and b:
            distance = float(haversine_km(a[0], a[1], b[0], b[1]))
        day_charges = price_per_day * days
        distance_charges = price_per_km * distance
    total = day_charges + distance_charges
    if include_driver_charge:
        total += driver_charge
    return Quote(
        total_days=days,
        total_distance=distance,
        day_charges=day_charges,
        distance_charges=distance_charges,
        driver_charge=driver_charge,
        total_amount=total,
    )
