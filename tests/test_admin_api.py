import uuid
from datetime import date

from fastapi.testclient import TestClient

from rentx.main import app

from .utils import far_future, signup, vehicle_payload


client = TestClient(app)


def _setup_booking(payment_method: str = "cash", offset: int = 30):
    owner_h, owner_id = signup(client)
    renter_h, renter_id = signup(client)
    admin_h, _ = signup(client, admin=True)
    vid = client.post("/vehicles", headers=owner_h, json=vehicle_payload()).json()["id"]
    assert client.put(f"/admin/vehicles/{vid}/status", headers=admin_h, json={"status": "approved"}).status_code == 200
    r = client.post("/bookings", headers=renter_h, json={
        "vehicle_id": vid,
        "start_date": far_future(offset).isoformat(),
        "end_date": far_future(offset + 1).isoformat(),
        "payment_method": payment_method,
    })
    assert r.status_code == 200, r.text
    return {
        "owner_h": owner_h,
        "owner_id": owner_id,
        "renter_h": renter_h,
        "renter_id": renter_id,
        "admin_h": admin_h,
        "vehicle_id": vid,
        "booking": r.json(),
    }


def test_admin_booking_search_and_status():
    ctx = _setup_booking(payment_method="online")
    admin_h = ctx["admin_h"]
    bid = ctx["booking"]["id"]

    r = client.get("/admin/bookings", headers=admin_h, params={"payment_method": "online", "payment_status": "pending", "limit": 100})
    assert r.status_code == 200
    data = r.json()
    assert any(b["id"] == bid for b in data["bookings"])
    assert data["current_page"] == 1
    assert data["total_pages"] >= 1

    today = date.today().isoformat()
    r = client.get("/admin/bookings", headers=admin_h, params={"from_date": today, "to_date": today, "limit": 100})
    assert any(b["id"] == bid for b in r.json()["bookings"])

    r = client.put(f"/admin/bookings/{bid}/status", headers=admin_h, json={"status": "completed"})
    assert r.status_code == 200
    assert r.json()["booking_status"] == "completed"
    vehicle = client.get(f"/vehicles/{ctx['vehicle_id']}").json()
    assert vehicle["availability"] is True

    r = client.put(f"/admin/bookings/{bid}/status", headers=admin_h, json={"status": "unknown"})
    assert r.status_code == 422


def test_admin_cancel_cancels_commission():
    ctx = _setup_booking()
    bid = ctx["booking"]["id"]
    r = client.put(f"/admin/bookings/{bid}/status", headers=ctx["admin_h"], json={"status": "cancelled"})
    assert r.status_code == 200
    earnings = client.get("/bookings/earnings", headers=ctx["owner_h"]).json()
    assert earnings["commissions"][0]["status"] == "cancelled"


def test_commission_payout_flow():
    ctx = _setup_booking()
    admin_h = ctx["admin_h"]
    commission = client.get("/bookings/earnings", headers=ctx["owner_h"]).json()["commissions"][0]
    assert commission["status"] == "pending"
    assert commission["invoice_number"] == ctx["booking"]["invoice_number"]

    r = client.get("/admin/commissions", headers=admin_h, params={"status": "pending", "limit": 100})
    assert r.status_code == 200
    assert any(c["id"] == commission["id"] for c in r.json()["commissions"])
    assert any(s["status"] == "pending" for s in r.json()["summary"])

    r = client.put(f"/admin/commissions/{commission['id']}/pay", headers=admin_h, json={"payment_method": "upi", "transaction_id": "UPI-123"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "paid"
    assert r.json()["paid_at"] is not None

    r = client.put(f"/admin/commissions/{commission['id']}/pay", headers=admin_h, json={})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_transition"

    earnings = client.get("/bookings/earnings", headers=ctx["owner_h"]).json()
    assert earnings["total_earnings"] == 200
    assert earnings["pending_earnings"] == 0

    owners = client.get("/admin/commissions/owners", headers=admin_h).json()["owners"]
    assert any(o["owner_id"] == ctx["owner_id"] and o["total_paid"] == 200 for o in owners)


def test_reports():
    ctx = _setup_booking(offset=40)
    admin_h = ctx["admin_h"]

    r = client.get("/admin/dashboard", headers=admin_h)
    assert r.status_code == 200
    dash = r.json()
    assert dash["total_stats"]["total_bookings"] >= 1
    assert dash["current_month"]["bookings"] >= 1
    assert dash["current_month"]["earnings"] >= ctx["booking"]["total_amount"]
    assert any(p["payment_method"] == "cash" for p in dash["payment_wise_earnings"])
    assert len(dash["top_cars"]) <= 5

    r = client.get("/admin/reports/monthly-earnings", headers=admin_h)
    assert r.status_code == 200
    months = r.json()["months"]
    this_month = next(m for m in months if m["month_number"] == date.today().month)
    assert this_month["cash_payments"] >= ctx["booking"]["total_amount"]

    r = client.get("/admin/reports/bookings.csv", headers=admin_h)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    lines = r.text.replace("\r\n", "\n").splitlines()
    assert lines[0].startswith("booking_code,invoice_number,created_at")
    assert any(ctx["booking"]["booking_code"] in line for line in lines[1:])

    assert client.get("/admin/dashboard", headers=ctx["renter_h"]).status_code == 403


def test_user_admin_and_cascade_delete():
    ctx = _setup_booking(offset=50)
    admin_h = ctx["admin_h"]

    users = client.get("/admin/users", headers=admin_h).json()
    assert any(u["id"] == ctx["owner_id"] for u in users)

    r = client.put(f"/admin/users/{ctx['renter_id']}/status", headers=admin_h, json={"is_verified": False})
    assert r.status_code == 200
    assert r.json()["is_verified"] is False

    r = client.delete(f"/admin/users/{ctx['owner_id']}", headers=admin_h)
    assert r.status_code == 200, r.text
    assert client.get(f"/vehicles/{ctx['vehicle_id']}").status_code == 404
    r = client.get(f"/bookings/{ctx['booking']['id']}", headers=admin_h)
    assert r.status_code == 404
    assert client.get("/auth/me", headers=ctx["owner_h"]).status_code == 401

    r = client.delete(f"/admin/users/{ctx['renter_id']}", headers=admin_h)
    assert r.status_code == 200
    assert client.delete(f"/admin/users/{ctx['renter_id']}", headers=admin_h).status_code == 404


def test_deleting_renter_frees_vehicle_held_today():
    owner_h, _ = signup(client)
    renter_h, renter_id = signup(client)
    admin_h, _ = signup(client, admin=True)
    vid = client.post("/vehicles", headers=owner_h, json=vehicle_payload()).json()["id"]
    assert client.put(f"/admin/vehicles/{vid}/status", headers=admin_h, json={"status": "approved"}).status_code == 200
    today = date.today()
    r = client.post("/bookings", headers=renter_h, json={
        "vehicle_id": vid,
        "start_date": today.isoformat(),
        "end_date": date.fromordinal(today.toordinal() + 2).isoformat(),
        "payment_method": "cash",
    })
    assert r.status_code == 200, r.text
    assert client.get(f"/vehicles/{vid}").json()["availability"] is False

    assert client.delete(f"/admin/users/{renter_id}", headers=admin_h).status_code == 200
    assert client.get(f"/vehicles/{vid}").json()["availability"] is True


def test_travel_analytics():
    owner_h, _ = signup(client)
    renter_h, _ = signup(client)
    admin_h, _ = signup(client, admin=True)
    vid = client.post("/vehicles", headers=owner_h, json=vehicle_payload()).json()["id"]
    assert client.put(f"/admin/vehicles/{vid}/status", headers=admin_h, json={"status": "approved"}).status_code == 200

    state = f"State-{uuid.uuid4().hex[:8]}"
    city = f"City-{uuid.uuid4().hex[:8]}"
    for offset, km in ((60, 150), (70, 1200)):
        r = client.post("/bookings", headers=renter_h, json={
            "vehicle_id": vid,
            "start_date": far_future(offset).isoformat(),
            "end_date": far_future(offset).isoformat(),
            "pickup_location": {"city": "Bengaluru", "district": "Bengaluru Urban", "state": state},
            "dropoff_location": {"city": city, "district": "Mysuru", "state": "Karnataka"},
            "payment_method": "cash",
            "pricing_type": "perKm",
            "estimated_distance": km,
        })
        assert r.status_code == 200, r.text

    r = client.get("/admin/analytics/travel", headers=admin_h)
    assert r.status_code == 200
    data = r.json()
    assert data["trip_distance"]["total_trips"] >= 2
    assert data["trip_distance"]["average_distance"] > 0

    by_state = next(s for s in data["state_wise_bookings"] if s["state"] == state)
    assert by_state["bookings"] == 2
    assert by_state["earnings"] == (150 + 1200) * 12

    labels = [b["range"] for b in data["distance_ranges"]]
    assert "100-200" in labels and "1000+" in labels
    assert labels.index("100-200") < labels.index("1000+")
    assert len(data["popular_destinations"]) <= 10

    assert client.get("/admin/analytics/travel", headers=renter_h).status_code == 403
