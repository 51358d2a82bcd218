import uuid

from fastapi.testclient import TestClient

from rentx.main import app

from .utils import far_future, signup, vehicle_payload


client = TestClient(app)


def _approved_vehicle(owner_h: dict, admin_h: dict, **overrides) -> str:
    r = client.post("/vehicles", headers=owner_h, json=vehicle_payload(**overrides))
    assert r.status_code == 200, r.text
    vid = r.json()["id"]
    assert r.json()["status"] == "pending"
    r = client.put(f"/admin/vehicles/{vid}/status", headers=admin_h, json={"status": "approved"})
    assert r.status_code == 200, r.text
    return vid


def _booking_body(vid: str, start, end, **overrides) -> dict:
    body = {
        "vehicle_id": vid,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "payment_method": "cash",
        "pickup_location": {"address": "Majestic", "coordinates": {"lat": 12.9767, "lng": 77.5713}},
        "dropoff_location": {"address": "Majestic", "coordinates": {"lat": 12.9767, "lng": 77.5713}},
    }
    body.update(overrides)
    return body


def test_submission_requires_documents():
    h, _ = signup(client)
    r = client.post("/vehicles", headers=h, json=vehicle_payload(documents={}))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "validation_failed"


def test_admin_vehicle_is_live_immediately():
    admin_h, _ = signup(client, admin=True)
    r = client.post("/vehicles", headers=admin_h, json=vehicle_payload(documents={}, commission_rate=150))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"
    assert r.json()["commission_rate"] == 150


def test_duplicate_registration_number():
    h, _ = signup(client)
    body = vehicle_payload()
    assert client.post("/vehicles", headers=h, json=body).status_code == 200
    r = client.post("/vehicles", headers=h, json=body)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "registration_number_taken"


def test_review_and_browse_filters():
    owner_h, _ = signup(client)
    admin_h, _ = signup(client, admin=True)
    city = f"Hampi{uuid.uuid4().hex[:6]}"
    r = client.post("/vehicles", headers=owner_h, json=vehicle_payload(city=city))
    vid = r.json()["id"]

    assert client.get("/vehicles", params={"city": city}).json()["total"] == 0
    pending = client.get("/admin/vehicles/pending", headers=admin_h).json()["vehicles"]
    assert any(v["id"] == vid for v in pending)

    r = client.put(f"/admin/vehicles/{vid}/status", headers=admin_h, json={"status": "rejected", "rejection_reason": "blurry RC"})
    assert r.json()["rejection_reason"] == "blurry RC"
    r = client.put(f"/admin/vehicles/{vid}/status", headers=admin_h, json={"status": "approved"})
    assert r.json()["status"] == "approved"
    assert r.json()["rejection_reason"] is None

    data = client.get("/vehicles", params={"city": city.lower(), "type": "suv", "max_price": 2500}).json()
    assert [v["id"] for v in data["vehicles"]] == [vid]
    assert client.get("/vehicles", params={"city": city, "min_price": 2500}).json()["total"] == 0

    mine = client.get("/vehicles/mine", headers=owner_h).json()["vehicles"]
    assert [v["id"] for v in mine] == [vid]


def test_book_quote_conflict_and_window_exclusion():
    owner_h, _ = signup(client)
    renter_h, _ = signup(client)
    admin_h, _ = signup(client, admin=True)
    city = f"Coorg{uuid.uuid4().hex[:6]}"
    vid = _approved_vehicle(owner_h, admin_h, city=city, price_per_day=1000, price_per_km=10)
    start, end = far_future(0), far_future(2)

    q = client.post("/bookings/quote", json=_booking_body(vid, start, end, driver_required=True))
    assert q.status_code == 200, q.text
    assert q.json()["total_days"] == 2
    assert q.json()["total_amount"] == 2000
    assert q.json()["driver_charge"] == 1000

    r = client.post("/bookings", headers=renter_h, json=_booking_body(vid, start, end))
    assert r.status_code == 200, r.text
    b = r.json()
    assert b["total_amount"] == 2000
    assert b["payment_status"] == "paid"
    assert b["booking_status"] == "confirmed"
    assert b["commission_generated"] is True

    r = client.post("/bookings", headers=renter_h, json=_booking_body(vid, far_future(1), far_future(3)))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "booking_conflict"

    busy = client.get("/vehicles", params={"city": city, "start_date": far_future(1).isoformat(), "end_date": far_future(5).isoformat()})
    assert busy.json()["total"] == 0
    free = client.get("/vehicles", params={"city": city, "start_date": far_future(3).isoformat(), "end_date": far_future(5).isoformat()})
    assert free.json()["total"] == 1


def test_per_km_requires_distance_and_bad_vehicle_id():
    owner_h, _ = signup(client)
    renter_h, _ = signup(client)
    admin_h, _ = signup(client, admin=True)
    vid = _approved_vehicle(owner_h, admin_h)
    r = client.post("/bookings", headers=renter_h, json=_booking_body(vid, far_future(), far_future(1), pricing_type="perKm", estimated_distance=0))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_distance"
    assert client.get("/bookings/mine", headers=renter_h).json()["bookings"] == []

    r = client.post("/bookings", headers=renter_h, json=_booking_body("not-a-vehicle", far_future(), far_future(1)))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "vehicle_unavailable"


def test_booking_visibility_and_cancel():
    owner_h, _ = signup(client)
    renter_h, _ = signup(client)
    other_h, _ = signup(client)
    admin_h, _ = signup(client, admin=True)
    vid = _approved_vehicle(owner_h, admin_h)
    r = client.post("/bookings", headers=renter_h, json=_booking_body(vid, far_future(10), far_future(12), payment_method="online"))
    assert r.status_code == 200, r.text
    bid = r.json()["id"]
    assert r.json()["payment_status"] == "pending"

    assert client.get(f"/bookings/{bid}", headers=renter_h).status_code == 200
    assert client.get(f"/bookings/{bid}", headers=owner_h).status_code == 200
    assert client.get(f"/bookings/{bid}", headers=admin_h).status_code == 200
    r = client.get(f"/bookings/{bid}", headers=other_h)
    assert r.status_code == 403

    owner_view = client.get("/bookings/owner", headers=owner_h).json()["bookings"]
    assert [b["id"] for b in owner_view] == [bid]

    assert client.put(f"/bookings/{bid}/cancel", headers=other_h).status_code == 403
    r = client.put(f"/bookings/{bid}/cancel", headers=renter_h)
    assert r.status_code == 200
    assert r.json()["booking_status"] == "cancelled"
    r = client.put(f"/bookings/{bid}/cancel", headers=renter_h)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_transition"

    earnings = client.get("/bookings/earnings", headers=owner_h).json()
    assert earnings["total_commissions"] == 1
    assert earnings["commissions"][0]["status"] == "cancelled"
    assert earnings["pending_earnings"] == 0


def test_owner_update_and_delete_vehicle():
    owner_h, _ = signup(client)
    renter_h, _ = signup(client)
    admin_h, _ = signup(client, admin=True)
    vid = _approved_vehicle(owner_h, admin_h)

    r = client.put(f"/vehicles/{vid}", headers=owner_h, json={"price_per_day": 2200, "features": ["gps"]})
    assert r.status_code == 200
    assert r.json()["price_per_day"] == 2200
    assert r.json()["features"] == ["gps"]
    assert client.put(f"/vehicles/{vid}", headers=owner_h, json={"commission_rate": 1}).status_code == 403
    assert client.put(f"/vehicles/{vid}", headers=renter_h, json={"seats": 7}).status_code == 403

    r = client.post("/bookings", headers=renter_h, json=_booking_body(vid, far_future(20), far_future(21)))
    bid = r.json()["id"]
    r = client.delete(f"/vehicles/{vid}", headers=owner_h)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_transition"

    assert client.put(f"/bookings/{bid}/cancel", headers=renter_h).status_code == 200
    assert client.delete(f"/vehicles/{vid}", headers=owner_h).status_code == 200
    assert client.get(f"/vehicles/{vid}").status_code == 404
