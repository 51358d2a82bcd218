import uuid
from datetime import date

from rentx.auth import hash_password
from rentx.config import settings
from rentx.models import User, Vehicle


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@rentx.test"


def unique_reg() -> str:
    return f"KA01{uuid.uuid4().hex[:8].upper()}"


def make_user(db, role: str = "user", name: str = "Test User") -> User:
    u = User(
        name=name,
        email=unique_email(role),
        password_hash=hash_password("secret123"),
        role=role,
        is_verified=True,
    )
    db.add(u)
    db.flush()
    return u


def make_vehicle(db, owner: User, **overrides) -> Vehicle:
    fields = dict(
        owner_user_id=owner.id,
        name="Swift Dzire",
        brand="Maruti",
        model="Dzire",
        year=2022,
        type="sedan",
        seats=5,
        transmission="manual",
        fuel_type="petrol",
        price_per_day=1000.0,
        price_per_km=10.0,
        registration_number=unique_reg(),
        images=[],
        features=["ac"],
        city="Bengaluru",
        district="Bengaluru Urban",
        state="Karnataka",
        status="approved",
        availability=True,
        commission_rate=200.0,
        total_earnings=0.0,
        total_bookings=0,
    )
    fields.update(overrides)
    v = Vehicle(**fields)
    db.add(v)
    db.flush()
    return v


def vehicle_payload(**overrides) -> dict:
    body = {
        "name": "Creta SX",
        "brand": "Hyundai",
        "model": "Creta",
        "year": 2023,
        "type": "suv",
        "seats": 5,
        "transmission": "automatic",
        "fuel_type": "diesel",
        "price_per_day": 2000,
        "price_per_km": 12,
        "registration_number": unique_reg(),
        "city": "Mysuru",
        "district": "Mysuru",
        "state": "Karnataka",
        "documents": {
            "rc_book": "https://files.rentx.test/rc.pdf",
            "registration_certificate": "https://files.rentx.test/reg.pdf",
        },
    }
    body.update(overrides)
    return body


def signup(client, admin: bool = False, name: str = "Tester") -> tuple[dict, str]:
    """Register, verify and return (auth headers, user id)."""
    email = unique_email("admin" if admin else "user")
    if admin:
        settings.ADMIN_EMAILS.append(email)
    r = client.post("/auth/register", json={"name": name, "email": email, "password": "secret123", "phone": "+919800000000"})
    assert r.status_code == 200, r.text
    body = r.json()
    r = client.post("/auth/verify_otp", json={"user_id": body["user_id"], "otp": body["dev_otp"]})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}, body["user_id"]


def far_future(offset_days: int = 0) -> date:
    # Each caller books its own vehicle, so windows only need to be in the future
    return date.fromordinal(date.today().toordinal() + 400 + offset_days)
