"""
HTTP tests for the reviewer endpoints.
"""

import pytest

from tests.conftest import CUSTOMER

API = "/api/v1"


async def pending_review(client, headers: dict, stay: dict) -> int:
    response = await client.post(
        f"{API}/bookings",
        json={**stay, "guest_count": 4, "total_price": 1196},
        headers=headers,
    )
    booking_id = response.json()["id"]
    await client.put(f"{API}/bookings/{booking_id}/customer-info", json=CUSTOMER, headers=headers)
    await client.put(
        f"{API}/bookings/{booking_id}/payment-method",
        json={"method": "qr_transfer"},
        headers=headers,
    )
    response = await client.post(
        f"{API}/bookings/{booking_id}/payment-proof",
        json={"proof_ref": "slips/qr-1.png"},
        headers=headers,
    )
    assert response.json()["status"] == "pending_review"
    return booking_id


@pytest.mark.asyncio
async def test_review_queue_requires_reviewer(client, guest_headers):
    response = await client.get(f"{API}/review/bookings", headers=guest_headers)
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_review_queue_lists_pending(client, guest_headers, reviewer_headers, future_stay):
    booking_id = await pending_review(client, guest_headers, future_stay)

    response = await client.get(f"{API}/review/bookings", headers=reviewer_headers)
    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [booking_id]
    assert response.json()[0]["payment_proof_ref"] == "slips/qr-1.png"


@pytest.mark.asyncio
async def test_guest_cannot_confirm(client, guest_headers, future_stay):
    booking_id = await pending_review(client, guest_headers, future_stay)

    response = await client.post(f"{API}/review/bookings/{booking_id}/confirm", headers=guest_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_confirm_twice_is_invalid_state(client, guest_headers, reviewer_headers, future_stay):
    booking_id = await pending_review(client, guest_headers, future_stay)

    response = await client.post(
        f"{API}/review/bookings/{booking_id}/confirm", headers=reviewer_headers
    )
    assert response.status_code == 200

    response = await client.post(
        f"{API}/review/bookings/{booking_id}/confirm", headers=reviewer_headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state"


@pytest.mark.asyncio
async def test_reject_cancels_with_reason(client, guest_headers, reviewer_headers, future_stay):
    booking_id = await pending_review(client, guest_headers, future_stay)

    response = await client.post(
        f"{API}/review/bookings/{booking_id}/reject",
        json={"reason": "Slip shows the wrong amount"},
        headers=reviewer_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await client.get(f"{API}/bookings/{booking_id}", headers=guest_headers)
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Slip shows the wrong amount"
