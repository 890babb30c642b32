from datetime import date
from decimal import Decimal

import pytest

from frontdesk.config import settings
from frontdesk.repositories import _room_lock


def create_booking(client, room, guest, check_in="2024-06-01", check_out="2024-06-04", adults=2, children=0):
    return client.post(
        "/api/bookings",
        json={
            "guest_id": guest.id,
            "room_id": room.id,
            "check_in_date": check_in,
            "check_out_date": check_out,
            "adults": adults,
            "children": children,
        },
    )


def test_requires_session_cookie(client):
    client.cookies.clear()
    resp = client.get("/api/bookings")
    assert resp.status_code == 401


def test_rejects_tampered_cookie(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-signed-token")
    assert client.get("/api/bookings").status_code == 401


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


# ---- bookings ----

def test_create_booking(client, room, guest, staff):
    resp = create_booking(client, room, guest)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["nights"] == 3
    assert Decimal(str(body["total_amount"])) == Decimal("300")
    assert body["created_by"] == staff.id
    assert body["booking_number"].startswith("BK")


def test_create_booking_over_capacity(client, room, guest):
    resp = create_booking(client, room, guest, adults=2, children=1)
    assert resp.status_code == 400
    assert resp.json()["error"] == "capacity_exceeded"


def test_create_booking_bad_dates(client, room, guest):
    resp = create_booking(client, room, guest, check_in="2024-06-04", check_out="2024-06-01")
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_create_booking_schema_validation(client, room, guest):
    resp = create_booking(client, room, guest, adults=0)
    assert resp.status_code == 422


def test_double_booking_is_a_conflict(client, room, guest):
    first = create_booking(client, room, guest).json()
    assert client.post(f"/api/bookings/{first['id']}/confirm").status_code == 200

    resp = create_booking(client, room, guest, check_in="2024-06-02", check_out="2024-06-03", adults=1)
    assert resp.status_code == 409
    assert resp.json()["error"] == "room_unavailable"


def test_check_in_and_out_flow(client, clock, room, guest):
    booking = create_booking(client, room, guest).json()
    url = f"/api/bookings/{booking['id']}"

    resp = client.post(f"{url}/check-in")
    assert resp.status_code == 409
    assert resp.json()["error"] == "illegal_transition"

    client.post(f"{url}/confirm")
    resp = client.post(f"{url}/check-in")
    assert resp.status_code == 400
    assert resp.json()["error"] == "too_early"

    clock.today = date(2024, 6, 1)
    resp = client.post(f"{url}/check-in")
    assert resp.status_code == 200
    assert resp.json()["status"] == "checked_in"
    assert client.get(f"/api/rooms/{room.id}").json()["status"] == "occupied"

    resp = client.post(f"{url}/check-out")
    assert resp.json()["status"] == "checked_out"
    assert client.get(f"/api/rooms/{room.id}").json()["status"] == "available"

    assert client.post(f"{url}/check-out").status_code == 409


def test_update_booking_recomputes_total(client, room, guest):
    booking = create_booking(client, room, guest).json()
    resp = client.patch(f"/api/bookings/{booking['id']}", json={"check_out_date": "2024-06-06"})
    assert resp.status_code == 200
    assert Decimal(str(resp.json()["total_amount"])) == Decimal("500")


def test_update_booking_null_means_unchanged(client, room, guest):
    booking = create_booking(client, room, guest).json()
    resp = client.patch(f"/api/bookings/{booking['id']}", json={"check_in_date": None, "special_requests": "Quiet room"})
    assert resp.status_code == 200
    assert resp.json()["check_in_date"] == "2024-06-01"
    assert resp.json()["special_requests"] == "Quiet room"


def test_cancel_and_delete_booking(client, room, guest):
    booking = create_booking(client, room, guest).json()
    url = f"/api/bookings/{booking['id']}"
    client.post(f"{url}/confirm")

    resp = client.delete(url)
    assert resp.status_code == 409
    assert resp.json()["error"] == "illegal_operation"

    assert client.post(f"{url}/cancel").json()["status"] == "cancelled"
    assert client.delete(url).status_code == 204
    assert client.get(url).status_code == 404


def test_list_bookings_filters(client, room, other_room, guest):
    create_booking(client, room, guest)
    second = create_booking(client, other_room, guest, adults=1).json()
    client.post(f"/api/bookings/{second['id']}/confirm")

    assert len(client.get("/api/bookings").json()) == 2
    confirmed = client.get("/api/bookings", params={"status": "confirmed"}).json()
    assert [b["id"] for b in confirmed] == [second["id"]]
    assert len(client.get("/api/bookings", params={"room_id": room.id}).json()) == 1


# ---- rooms ----

def test_room_types(client, double_type):
    resp = client.post("/api/room-types", json={"name": "Suite", "base_price": "150.00", "max_occupancy": 4, "amenities": ["WiFi", "Balcony"]})
    assert resp.status_code == 201
    assert resp.json()["amenities"] == ["WiFi", "Balcony"]

    names = [t["name"] for t in client.get("/api/room-types").json()]
    assert names == ["Double Room", "Suite"]
    assert client.post("/api/room-types", json={"name": "Suite", "base_price": "1"}).status_code == 409


def test_room_crud(client, double_type):
    resp = client.post("/api/rooms", json={"room_number": "305", "room_type_id": double_type.id, "floor": 3})
    assert resp.status_code == 201
    room = resp.json()
    assert room["status"] == "available"
    assert room["room_type"]["name"] == "Double Room"

    assert client.post("/api/rooms", json={"room_number": "305", "room_type_id": double_type.id}).status_code == 409

    resp = client.patch(f"/api/rooms/{room['id']}", json={"notes": "Sea view"})
    assert resp.json()["notes"] == "Sea view"

    assert client.delete(f"/api/rooms/{room['id']}").status_code == 204
    assert client.get(f"/api/rooms/{room['id']}").status_code == 404


def test_room_with_bookings_cannot_be_deleted(client, room, guest):
    create_booking(client, room, guest)
    resp = client.delete(f"/api/rooms/{room.id}")
    assert resp.status_code == 409


def test_room_status_endpoint(client, clock, room, guest):
    resp = client.patch(f"/api/rooms/{room.id}/status", json={"status": "cleaning", "is_clean": False})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cleaning"
    assert resp.json()["is_clean"] is False

    resp = client.patch(f"/api/rooms/{room.id}/status", json={"status": "occupied"})
    assert resp.status_code == 409

    booking = create_booking(client, room, guest).json()
    client.post(f"/api/bookings/{booking['id']}/confirm")
    clock.today = date(2024, 6, 1)
    client.post(f"/api/bookings/{booking['id']}/check-in")

    resp = client.patch(f"/api/rooms/{room.id}/status", json={"status": "available"})
    assert resp.status_code == 409
    assert booking["booking_number"] in resp.json()["detail"]


def test_checkout_keeps_maintenance_status(client, clock, room, guest):
    booking = create_booking(client, room, guest).json()
    url = f"/api/bookings/{booking['id']}"
    client.post(f"{url}/confirm")
    clock.today = date(2024, 6, 1)
    client.post(f"{url}/check-in")
    client.post(f"{url}/check-out")

    client.patch(f"/api/rooms/{room.id}/status", json={"status": "maintenance"})
    assert client.get(f"/api/rooms/{room.id}").json()["status"] == "maintenance"


def test_available_rooms(client, room, other_room, guest):
    booking = create_booking(client, room, guest).json()
    client.post(f"/api/bookings/{booking['id']}/confirm")

    resp = client.get("/api/rooms/available", params={"check_in": "2024-06-02", "check_out": "2024-06-05", "guests": 2})
    assert resp.status_code == 200
    offers = resp.json()
    assert [o["room"]["room_number"] for o in offers] == ["102"]
    assert offers[0]["nights"] == 3
    assert Decimal(str(offers[0]["total_amount"])) == Decimal("300")

    resp = client.get("/api/rooms/available", params={"check_in": "2024-06-04", "check_out": "2024-06-05"})
    assert {o["room"]["room_number"] for o in resp.json()} == {"101", "102"}

    assert client.get("/api/rooms/available", params={"check_in": "2024-06-02", "check_out": "2024-06-05", "guests": 3}).json() == []


def test_room_calendar(client, room, guest):
    booking = create_booking(client, room, guest, check_in="2024-06-02", check_out="2024-06-04", adults=1).json()
    params = {"date_from": "2024-06-01", "date_to": "2024-06-04"}

    days = client.get(f"/api/rooms/{room.id}/calendar", params=params).json()
    assert all(d["available"] for d in days)

    client.post(f"/api/bookings/{booking['id']}/confirm")
    days = client.get(f"/api/rooms/{room.id}/calendar", params=params).json()
    assert [(d["date"], d["available"]) for d in days] == [
        ("2024-06-01", True),
        ("2024-06-02", False),
        ("2024-06-03", False),
        ("2024-06-04", True),
    ]


# ---- guests ----

def test_guest_crud_and_search(client, guest):
    resp = client.post("/api/guests", json={"first_name": " Grace ", "last_name": "Hopper", "email": "grace@example.com", "id_type": "passport"})
    assert resp.status_code == 201
    created = resp.json()
    assert created["first_name"] == "Grace"
    assert created["id_type"] == "passport"

    found = client.get("/api/guests", params={"search": "hop"}).json()
    assert [g["id"] for g in found] == [created["id"]]

    resp = client.patch(f"/api/guests/{created['id']}", json={"phone": "+1 555 0100", "last_name": None})
    assert resp.json()["phone"] == "+1 555 0100"
    assert resp.json()["last_name"] == "Hopper"

    assert client.delete(f"/api/guests/{created['id']}").status_code == 204
    assert client.get(f"/api/guests/{created['id']}").status_code == 404


def test_guest_with_bookings_cannot_be_deleted(client, room, guest):
    create_booking(client, room, guest)
    resp = client.delete(f"/api/guests/{guest.id}")
    assert resp.status_code == 409
    assert resp.json()["error"] == "illegal_operation"


# ---- payments ----

def test_manual_payment(client, room, guest):
    booking = create_booking(client, room, guest).json()
    resp = client.post("/api/payments", json={"booking_id": booking["id"], "amount": "100.00", "method": "cash"})
    assert resp.status_code == 201
    assert resp.json()["status"] == "completed"

    listed = client.get("/api/payments", params={"booking_id": booking["id"]}).json()
    assert len(listed) == 1


def test_payment_webhook_confirms_booking(client, room, guest):
    booking = create_booking(client, room, guest).json()
    event = {"booking_id": booking["id"], "outcome": "succeeded", "transaction_id": "tx_web_1"}

    resp = client.post("/api/payments/webhook", json=event)
    assert resp.status_code == 200
    assert resp.json() == {"booking_id": booking["id"], "booking_status": "confirmed"}

    # redelivery
    assert client.post("/api/payments/webhook", json=event).json()["booking_status"] == "confirmed"
    assert len(client.get("/api/payments", params={"booking_id": booking["id"]}).json()) == 1


def test_payment_webhook_does_not_need_session(client, room, guest):
    booking = create_booking(client, room, guest).json()
    client.cookies.clear()
    resp = client.post("/api/payments/webhook", json={"booking_id": booking["id"], "outcome": "failed"})
    assert resp.status_code == 200
    assert resp.json()["booking_status"] == "pending"


def test_payment_webhook_checks_token(client, room, guest, monkeypatch):
    monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", "s3cret")
    booking = create_booking(client, room, guest).json()
    event = {"booking_id": booking["id"], "outcome": "succeeded"}

    assert client.post("/api/payments/webhook", json=event).status_code == 401
    assert client.post("/api/payments/webhook", json=event, headers={"X-Webhook-Token": "wrong"}).status_code == 401
    resp = client.post("/api/payments/webhook", json=event, headers={"X-Webhook-Token": "s3cret"})
    assert resp.status_code == 200


def test_payment_webhook_room_taken(client, room, guest):
    first = create_booking(client, room, guest).json()
    second = create_booking(client, room, guest, check_in="2024-06-02", check_out="2024-06-03", adults=1).json()
    client.post(f"/api/bookings/{first['id']}/confirm")

    resp = client.post("/api/payments/webhook", json={"booking_id": second["id"], "outcome": "succeeded"})
    assert resp.status_code == 409
    assert client.get(f"/api/bookings/{second['id']}").json()["status"] == "pending"


# ---- store ----

def test_room_lock_is_shared_per_room():
    assert _room_lock(1) is _room_lock(1)
    assert _room_lock(1) is not _room_lock(2)


@pytest.mark.parametrize("path", ["/api/bookings/999", "/api/rooms/999", "/api/guests/999"])
def test_not_found(client, path):
    assert client.get(path).status_code == 404
