from datetime import datetime, timedelta, timezone


CUSTOMER = {"X-Actor-Id": "user1", "X-Actor-Role": "customer"}
OTHER_CUSTOMER = {"X-Actor-Id": "user2", "X-Actor-Role": "customer"}
ORGANIZER = {"X-Actor-Id": "org1", "X-Actor-Role": "organizer"}
ADMIN = {"X-Actor-Id": "admin1", "X-Actor-Role": "admin"}


def _publish_event(client, quantity=50, price="100.00"):
    payload = {
        "title": "Harbour Lights Live",
        "starts_at": (datetime.now(timezone.utc) + timedelta(days=10)).isoformat(),
        "location": "Waterfront Arena",
        "ticket_types": [{"name": "Regular", "price": price, "quantity": quantity}],
    }
    response = client.post("/events", json=payload, headers=ORGANIZER)
    assert response.status_code == 201
    return response.json()


def _ticket_remaining(client, event_id):
    tickets = client.get(f"/events/{event_id}/tickets").json()
    return tickets[0]["remaining_quantity"]


def test_booking_flow(client):
    event = _publish_event(client)
    ticket_type_id = event["ticket_types"][0]["id"]

    response = client.post(
        f"/tickets/{ticket_type_id}/bookings",
        json={"quantity": 3},
        headers=CUSTOMER,
    )

    assert response.status_code == 201
    booking_id = response.json()["booking_id"]
    assert response.json()["status"] == "PENDING"
    assert _ticket_remaining(client, event["id"]) == 50

    pay_response = client.post(
        f"/bookings/{booking_id}/payment",
        json={"test_mode": True, "force_result": "success"},
        headers=CUSTOMER,
    )
    assert pay_response.status_code == 200
    body = pay_response.json()
    assert body["success"] is True
    assert body["booking"]["status"] == "CONFIRMED"
    assert body["payment"]["status"] == "SUCCESS"
    assert float(body["payment"]["amount"]) == 300.0
    assert _ticket_remaining(client, event["id"]) == 47

    payment_id = body["payment"]["payment_id"]
    status_response = client.get(f"/payments/{payment_id}", headers=CUSTOMER)
    assert status_response.status_code == 200
    assert status_response.json()["booking"]["ticket"] == {
        "type": "Regular",
        "event": "Harbour Lights Live",
    }

    refund_response = client.post(f"/payments/{payment_id}/refund", headers=CUSTOMER)
    assert refund_response.status_code == 200
    assert refund_response.json()["payment"]["status"] == "REFUNDED"
    assert refund_response.json()["booking"]["status"] == "CANCELLED"
    assert _ticket_remaining(client, event["id"]) == 50

    again = client.post(f"/payments/{payment_id}/refund", headers=CUSTOMER)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "NOT_SUCCESSFUL_PAYMENT"


def test_declined_payment_returns_402(client):
    event = _publish_event(client)
    ticket_type_id = event["ticket_types"][0]["id"]
    booking_id = client.post(
        f"/tickets/{ticket_type_id}/bookings",
        json={"quantity": 2},
        headers=CUSTOMER,
    ).json()["booking_id"]

    response = client.post(
        f"/bookings/{booking_id}/payment",
        json={"test_mode": True, "force_result": "failed"},
        headers=CUSTOMER,
    )

    assert response.status_code == 402
    assert response.json()["success"] is False
    assert response.json()["booking"]["status"] == "CANCELLED"
    assert _ticket_remaining(client, event["id"]) == 50

    second = client.post(f"/bookings/{booking_id}/payment", headers=CUSTOMER)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "PAYMENT_EXISTS"


def test_payment_without_body_uses_gateway_draw(client):
    event = _publish_event(client)
    ticket_type_id = event["ticket_types"][0]["id"]
    booking_id = client.post(
        f"/tickets/{ticket_type_id}/bookings",
        json={"quantity": 1},
        headers=CUSTOMER,
    ).json()["booking_id"]

    # The client fixture scripts every draw as 1, which is a success.
    response = client.post(f"/bookings/{booking_id}/payment", headers=CUSTOMER)

    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "CONFIRMED"


def test_duplicate_booking_is_conflict(client):
    event = _publish_event(client)
    ticket_type_id = event["ticket_types"][0]["id"]
    url = f"/tickets/{ticket_type_id}/bookings"

    assert client.post(url, json={"quantity": 1}, headers=CUSTOMER).status_code == 201
    response = client.post(url, json={"quantity": 1}, headers=CUSTOMER)

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": {
            "code": "DUPLICATE_BOOKING",
            "message": "You already have an active booking for this ticket.",
        },
    }
    assert client.post(url, json={"quantity": 1}, headers=OTHER_CUSTOMER).status_code == 201


def test_insufficient_inventory_reports_available(client):
    event = _publish_event(client, quantity=2)
    ticket_type_id = event["ticket_types"][0]["id"]

    response = client.post(
        f"/tickets/{ticket_type_id}/bookings",
        json={"quantity": 5},
        headers=CUSTOMER,
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INSUFFICIENT_INVENTORY"
    assert response.json()["error"]["available_quantity"] == 2
    assert client.get("/bookings", headers=CUSTOMER).json()["total"] == 0


def test_cancel_flow_and_listing(client):
    event = _publish_event(client)
    ticket_type_id = event["ticket_types"][0]["id"]
    booking_id = client.post(
        f"/tickets/{ticket_type_id}/bookings",
        json={"quantity": 2},
        headers=CUSTOMER,
    ).json()["booking_id"]

    assert client.put(f"/bookings/{booking_id}/cancel", headers=OTHER_CUSTOMER).status_code == 404

    response = client.put(f"/bookings/{booking_id}/cancel", headers=CUSTOMER)
    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert _ticket_remaining(client, event["id"]) == 50

    again = client.put(f"/bookings/{booking_id}/cancel", headers=CUSTOMER)
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "ALREADY_CANCELLED"

    listing = client.get("/bookings", headers=CUSTOMER).json()
    assert listing["total"] == 1
    assert listing["data"][0]["booking_id"] == booking_id

    assert client.get("/outbox/events", headers=CUSTOMER).status_code == 403
    outbox = client.get("/outbox/events", headers=ADMIN).json()
    assert [item["event_type"] for item in outbox] == ["BOOKING_CANCELLED"]
    published = client.post(
        f"/outbox/events/{outbox[0]['id']}/mark-published",
        headers=ADMIN,
    )
    assert published.json()["status"] == "PUBLISHED"
    assert client.get("/outbox/events", headers=ADMIN).json() == []

    missing = client.post("/outbox/events/nope/mark-published", headers=ADMIN)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


def test_customers_cannot_publish_events(client):
    payload = {
        "title": "Pop-up",
        "starts_at": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
        "location": "Somewhere",
        "ticket_types": [{"name": "Regular", "price": "10.00", "quantity": 5}],
    }

    response = client.post("/events", json=payload, headers=CUSTOMER)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_missing_actor_headers_is_unauthorized(client):
    response = client.get("/bookings")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "UNAUTHORIZED", "message": "Missing actor headers"},
    }


def test_invalid_quantity_uses_error_envelope(client):
    event = _publish_event(client)
    ticket_type_id = event["ticket_types"][0]["id"]

    response = client.post(
        f"/tickets/{ticket_type_id}/bookings",
        json={"quantity": 0},
        headers=CUSTOMER,
    )

    assert response.status_code == 422
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert "quantity" in response.json()["error"]["message"]


def test_events_must_start_in_the_future(client):
    payload = {
        "title": "Last Night",
        "starts_at": (datetime.now(timezone.utc) - timedelta(days=1)).isoformat(),
        "location": "Waterfront Arena",
        "ticket_types": [{"name": "Regular", "price": "10.00", "quantity": 5}],
    }

    response = client.post("/events", json=payload, headers=ORGANIZER)

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert client.get("/events").json() == []


def test_unknown_ticket_type_is_not_found(client):
    response = client.post(
        "/tickets/does-not-exist/bookings",
        json={"quantity": 1},
        headers=CUSTOMER,
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
