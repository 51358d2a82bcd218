import csv
import io
from datetime import date, datetime

from sqlalchemy import case, extract, func
from sqlalchemy.orm import Session, joinedload

from . import commissions
from .models import Booking, User, Vehicle


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _month_start(d: date, offset: int = 0) -> datetime:
    month = d.month - 1 + offset
    return datetime(d.year + month // 12, month % 12 + 1, 1)


def _paid_total(db: Session, since: datetime | None = None, until: datetime | None = None) -> float:
    q = db.query(func.coalesce(func.sum(Booking.total_amount), 0)).filter(Booking.payment_status == "paid")
    if since is not None:
        q = q.filter(Booking.created_at >= since)
    if until is not None:
        q = q.filter(Booking.created_at < until)
    return float(q.scalar() or 0)


def _count_bookings(db: Session, since: datetime, until: datetime | None = None) -> int:
    q = db.query(func.count(Booking.id)).filter(Booking.created_at >= since)
    if until is not None:
        q = q.filter(Booking.created_at < until)
    return int(q.scalar() or 0)


def dashboard(db: Session, today: date | None = None) -> dict:
    today = today or date.today()
    this_month = _month_start(today)
    last_month = _month_start(today, -1)

    by_method = (
        db.query(Booking.payment_method, func.sum(Booking.total_amount), func.count(Booking.id))
        .filter(Booking.payment_status == "paid")
        .group_by(Booking.payment_method)
        .all()
    )
    top = (
        db.query(Vehicle, func.count(Booking.id).label("bookings"), func.coalesce(func.sum(Booking.total_amount), 0))
        .join(Booking, Booking.vehicle_id == Vehicle.id)
        .group_by(Vehicle.id)
        .order_by(func.count(Booking.id).desc())
        .limit(5)
        .all()
    )
    ledger = commissions.totals(db)
    return {
        "total_stats": {
            "total_cars": db.query(Vehicle).filter(Vehicle.status == "approved").count(),
            "pending_cars": db.query(Vehicle).filter(Vehicle.status == "pending").count(),
            "total_bookings": db.query(Booking).count(),
            "total_users": db.query(User).count(),
        },
        "current_month": {
            "bookings": _count_bookings(db, this_month),
            "earnings": _paid_total(db, since=this_month),
        },
        "last_month": {
            "bookings": _count_bookings(db, last_month, this_month),
            "earnings": _paid_total(db, since=last_month, until=this_month),
        },
        "commissions": {"total_paid": ledger["total_paid"], "total_pending": ledger["total_pending"]},
        "payment_wise_earnings": [
            {"payment_method": m, "total": float(t or 0), "count": int(n)} for m, t, n in by_method
        ],
        "top_cars": [
            {"vehicle_id": str(v.id), "name": v.name, "brand": v.brand, "model": v.model, "bookings": int(n), "earnings": float(e)}
            for v, n, e in top
        ],
    }


def monthly_earnings(db: Session, year: int) -> list[dict]:
    month = extract("month", Booking.created_at)
    rows = (
        db.query(
            month.label("month"),
            func.sum(Booking.total_amount),
            func.count(Booking.id),
            func.sum(case((Booking.payment_method == "cash", Booking.total_amount), else_=0)),
            func.sum(case((Booking.payment_method == "online", Booking.total_amount), else_=0)),
        )
        .filter(
            Booking.payment_status == "paid",
            Booking.created_at >= datetime(year, 1, 1),
            Booking.created_at < datetime(year + 1, 1, 1),
        )
        .group_by(month)
        .order_by(month)
        .all()
    )
    return [
        {
            "month": MONTH_NAMES[int(m) - 1],
            "month_number": int(m),
            "total_earnings": float(total or 0),
            "total_bookings": int(count),
            "cash_payments": float(cash or 0),
            "online_payments": float(online or 0),
        }
        for m, total, count, cash, online in rows
    ]


DISTANCE_BOUNDARIES = (0, 50, 100, 200, 500, 1000)


def _distance_range(km: float) -> str:
    """Bucket label for a trip distance; the last bucket is open-ended."""
    lower = DISTANCE_BOUNDARIES[0]
    for upper in DISTANCE_BOUNDARIES[1:]:
        if km < upper:
            return f"{lower}-{upper}"
        lower = upper
    return f"{lower}+"


def travel_analytics(db: Session) -> dict:
    """Destination, distance and state breakdowns over every booking.

    Locations are free-form JSON, so grouping happens here rather than in SQL.
    """
    rows = db.query(
        Booking.pickup_location, Booking.dropoff_location, Booking.total_distance, Booking.total_amount,
    ).all()

    destinations: dict[tuple, dict] = {}
    states: dict[str | None, dict] = {}
    ranges: dict[str, dict] = {}
    distance_sum = 0.0
    for pickup, dropoff, distance, amount in rows:
        pickup, dropoff = pickup or {}, dropoff or {}
        distance, amount = float(distance or 0), float(amount or 0)
        distance_sum += distance

        key = (dropoff.get("city"), dropoff.get("district"), dropoff.get("state"))
        d = destinations.setdefault(key, {"count": 0, "total_distance": 0.0})
        d["count"] += 1
        d["total_distance"] += distance

        s = states.setdefault(pickup.get("state"), {"bookings": 0, "earnings": 0.0})
        s["bookings"] += 1
        s["earnings"] += amount

        r = ranges.setdefault(_distance_range(distance), {"count": 0, "earnings": 0.0})
        r["count"] += 1
        r["earnings"] += amount

    top = sorted(destinations.items(), key=lambda kv: kv[1]["count"], reverse=True)[:10]
    order = [_distance_range(b) for b in DISTANCE_BOUNDARIES]
    return {
        "popular_destinations": [
            {"city": c, "district": dt, "state": st, "count": d["count"], "total_distance": round(d["total_distance"], 2)}
            for (c, dt, st), d in top
        ],
        "trip_distance": {
            "average_distance": round(distance_sum / len(rows), 2) if rows else 0,
            "total_trips": len(rows),
        },
        "state_wise_bookings": [
            {"state": st, "bookings": s["bookings"], "earnings": s["earnings"]}
            for st, s in sorted(states.items(), key=lambda kv: kv[1]["bookings"], reverse=True)
        ],
        "distance_ranges": [
            {"range": label, "count": ranges[label]["count"], "avg_earnings": round(ranges[label]["earnings"] / ranges[label]["count"], 2)}
            for label in order
            if label in ranges
        ],
    }


CSV_HEADER = [
    "booking_code", "invoice_number", "created_at", "renter", "renter_email", "vehicle", "registration_number",
    "start_date", "end_date", "total_days", "pricing_type", "total_distance", "total_amount",
    "payment_method", "payment_status", "booking_status", "commission_generated", "commission_amount",
]


def bookings_csv(db: Session, bookings: list[Booking] | None = None) -> str:
    if bookings is None:
        bookings = (
            db.query(Booking)
            .options(joinedload(Booking.user), joinedload(Booking.vehicle))
            .order_by(Booking.created_at.desc())
            .all()
        )
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(CSV_HEADER)
    for b in bookings:
        u, v = b.user, b.vehicle
        w.writerow([
            b.booking_code,
            b.invoice_number,
            b.created_at.isoformat(),
            u.name if u else "",
            u.email if u else "",
            f"{v.brand} {v.model}" if v else "",
            v.registration_number if v else "",
            b.start_date.isoformat(),
            b.end_date.isoformat(),
            b.total_days,
            b.pricing_type,
            b.total_distance,
            b.total_amount,
            b.payment_method,
            b.payment_status,
            b.booking_status,
            "yes" if b.commission_generated else "no",
            b.commission_amount,
        ])
    return buf.getvalue()
