"""Integration tests for API endpoints."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from stayhub.schemas.auth import UserRole


def _stay(offset_days: int = 30, nights: int = 4) -> dict[str, str]:
    check_in = date.today() + timedelta(days=offset_days)
    return {
        "check_in": check_in.isoformat(),
        "check_out": (check_in + timedelta(days=nights)).isoformat(),
    }


async def _create_property(client, auth_headers, host_id, data) -> dict:
    response = await client.post(
        "/v1/property/create",
        json=data,
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 201
    return response.json()


async def _create_booking(client, auth_headers, guest_id, property_id, **stay) -> dict:
    response = await client.post(
        "/v1/booking/create",
        json={"property_id": property_id, "guests": 2, **(stay or _stay())},
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_booking_to_payment_flow(test_client, auth_headers, sample_property_data):
    """Reserve, confirm, pay: fee and payout are split from the exact total."""
    host_id, guest_id = uuid4(), uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)

    booking = await _create_booking(test_client, auth_headers, guest_id, property["id"])
    assert booking["status"] == "pending"
    assert booking["nights"] == 4
    assert booking["total_price"] == "400.00"

    response = await test_client.post(
        "/v1/booking/update-status",
        json={"booking_id": booking["id"], "status": "confirmed"},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    response = await test_client.post(
        "/v1/payment/process",
        json={"booking_id": booking["id"], "payment_method": "card"},
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 201
    payment = response.json()
    assert payment["status"] == "completed"
    assert payment["amount"] == "400.00"
    assert payment["platform_fee"] == "60.00"
    assert payment["host_amount"] == "340.00"

    response = await test_client.post(
        "/v1/booking/get",
        json={"booking_id": booking["id"]},
        headers=auth_headers(guest_id)
    )
    assert response.json()["status"] == "paid"

    response = await test_client.post(
        "/v1/payment/process",
        json={"booking_id": booking["id"], "payment_method": "card"},
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_PAYMENT"
    assert response.headers["content-type"].startswith("application/problem+json")


@pytest.mark.asyncio
async def test_refund_flow(test_client, auth_headers, sample_property_data):
    host_id, guest_id = uuid4(), uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)
    booking = await _create_booking(test_client, auth_headers, guest_id, property["id"])

    await test_client.post(
        "/v1/booking/update-status",
        json={"booking_id": booking["id"], "status": "confirmed"},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    payment = (await test_client.post(
        "/v1/payment/process",
        json={"booking_id": booking["id"], "payment_method": "card"},
        headers=auth_headers(guest_id)
    )).json()

    response = await test_client.post(
        "/v1/payment/refund",
        json={"payment_id": payment["id"], "reason": "Host cancelled"},
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 403
    assert response.json()["code"] == "UNAUTHORIZED"

    response = await test_client.post(
        "/v1/payment/refund",
        json={"payment_id": payment["id"], "reason": "Host cancelled"},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "refunded"
    assert response.json()["refund_reason"] == "Host cancelled"

    response = await test_client.post(
        "/v1/payment/refund",
        json={"payment_id": payment["id"]},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_STATE"

    response = await test_client.post(
        "/v1/booking/get",
        json={"booking_id": booking["id"]},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_overlapping_booking_conflicts(test_client, auth_headers, sample_property_data):
    host_id = uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)
    await _create_booking(test_client, auth_headers, uuid4(), property["id"], **_stay(30, 4))

    response = await test_client.post(
        "/v1/booking/create",
        json={"property_id": property["id"], "guests": 1, **_stay(32, 4)},
        headers=auth_headers(uuid4())
    )
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "AVAILABILITY_CONFLICT"
    assert body["retryable"] is False

    # Back-to-back stay starting on the previous check-out day
    await _create_booking(test_client, auth_headers, uuid4(), property["id"], **_stay(34, 2))


@pytest.mark.asyncio
async def test_self_booking_forbidden(test_client, auth_headers, sample_property_data):
    host_id = uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)

    response = await test_client.post(
        "/v1/booking/create",
        json={"property_id": property["id"], "guests": 1, **_stay()},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 403
    assert response.json()["code"] == "SELF_BOOKING_FORBIDDEN"


@pytest.mark.asyncio
async def test_invalid_transition(test_client, auth_headers, sample_property_data):
    host_id, guest_id = uuid4(), uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)
    booking = await _create_booking(test_client, auth_headers, guest_id, property["id"])

    response = await test_client.post(
        "/v1/booking/update-status",
        json={"booking_id": booking["id"], "status": "completed"},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_unknown_booking_is_not_found(test_client, auth_headers):
    response = await test_client.post(
        "/v1/booking/get",
        json={"booking_id": str(uuid4())},
        headers=auth_headers(uuid4())
    )
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "NOT_FOUND"
    assert body["instance"] == "/v1/booking/get"


@pytest.mark.asyncio
async def test_missing_auth(test_client):
    response = await test_client.post("/v1/booking/list", json={})

    assert response.status_code == 401
    data = response.json()
    assert data["status"] == 401
    assert "authorization" in data["title"].lower()
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_token(test_client):
    response = await test_client.post(
        "/v1/booking/list",
        json={},
        headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "stay",
    [
        {"check_in": "2030-01-05", "check_out": "2030-01-05"},
        {"check_in": "2030-01-05", "check_out": "2030-01-01"},
        {"check_in": "2001-01-01", "check_out": "2001-01-03"},
    ],
)
async def test_create_booking_invalid_dates(test_client, auth_headers, stay):
    response = await test_client.post(
        "/v1/booking/create",
        json={"property_id": str(uuid4()), "guests": 1, **stay},
        headers=auth_headers(uuid4())
    )

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert "violations" in data


@pytest.mark.asyncio
async def test_list_bookings_by_role(test_client, auth_headers, sample_property_data):
    host_id, guest_id = uuid4(), uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)
    booking = await _create_booking(test_client, auth_headers, guest_id, property["id"])

    guest_view = (await test_client.post(
        "/v1/booking/list", json={}, headers=auth_headers(guest_id)
    )).json()
    host_view = (await test_client.post(
        "/v1/booking/list", json={"status": "pending"}, headers=auth_headers(host_id, UserRole.HOST)
    )).json()

    assert guest_view["count"] == 1
    assert guest_view["items"][0]["id"] == booking["id"]
    assert [b["id"] for b in host_view["items"]] == [booking["id"]]


@pytest.mark.asyncio
async def test_property_endpoints(test_client, auth_headers, sample_property_data):
    host_id = uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)
    assert property["price_per_night"] == "100.00"

    response = await test_client.post(
        "/v1/property/update",
        json={"property_id": property["id"], "price_per_night": "125.50"},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 200
    assert response.json()["price_per_night"] == "125.50"

    response = await test_client.post(
        "/v1/property/list",
        json={"host_id": str(host_id)},
        headers=auth_headers(uuid4())
    )
    assert response.json()["count"] == 1

    response = await test_client.post(
        "/v1/property/create",
        json=sample_property_data,
        headers=auth_headers(uuid4(), UserRole.GUEST)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_host_earnings_endpoints(test_client, auth_headers, sample_property_data):
    host_id, guest_id = uuid4(), uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)
    booking = await _create_booking(test_client, auth_headers, guest_id, property["id"])
    await test_client.post(
        "/v1/booking/update-status",
        json={"booking_id": booking["id"], "status": "confirmed"},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    await test_client.post(
        "/v1/payment/process",
        json={"booking_id": booking["id"], "payment_method": "card"},
        headers=auth_headers(guest_id)
    )

    response = await test_client.post(
        "/v1/payment/earnings",
        json={},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 200
    items = response.json()["items"]
    assert len(items) == 1
    assert items[0]["total_earnings"] == "340.00"

    response = await test_client.post(
        "/v1/payment/earnings-summary",
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.json()["total_payments"] == 1

    response = await test_client.post(
        "/v1/payment/earnings-summary",
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_chat_endpoints(test_client, auth_headers):
    alice, bob = uuid4(), uuid4()

    response = await test_client.post(
        "/v1/chat/send",
        json={"receiver_id": str(bob), "content": "Hi Bob"},
        headers=auth_headers(alice)
    )
    assert response.status_code == 201
    assert response.json()["read"] is False

    response = await test_client.post(
        "/v1/chat/conversation",
        json={"other_user_id": str(alice)},
        headers=auth_headers(bob)
    )
    assert [m["content"] for m in response.json()["items"]] == ["Hi Bob"]

    response = await test_client.post(
        "/v1/chat/read",
        json={"other_user_id": str(alice)},
        headers=auth_headers(bob)
    )
    assert response.json() == {"unread": 0}


@pytest.mark.asyncio
async def test_responses_carry_request_id(test_client, auth_headers):
    response = await test_client.post(
        "/v1/booking/list",
        json={},
        headers={**auth_headers(uuid4()), "X-Request-ID": "req-123"}
    )
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_deactivated_property_refuses_bookings(test_client, auth_headers, sample_property_data):
    host_id, guest_id = uuid4(), uuid4()
    property = await _create_property(test_client, auth_headers, host_id, sample_property_data)

    response = await test_client.post(
        "/v1/property/deactivate",
        json={"property_id": property["id"]},
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 403

    response = await test_client.post(
        "/v1/property/deactivate",
        json={"property_id": property["id"]},
        headers=auth_headers(host_id, UserRole.HOST)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"

    response = await test_client.post(
        "/v1/booking/create",
        json={"property_id": property["id"], "guests": 2, **_stay()},
        headers=auth_headers(guest_id)
    )
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_STATE"
