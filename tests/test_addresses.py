"""Address book API tests"""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

ADDRESS = {
    "kind": "WORK",
    "line1": "  5 Park Street ",
    "landmark": "Opposite the metro station",
    "city": "Kolkata",
    "state": "West Bengal",
    "pincode": "700016",
}


@pytest.mark.asyncio
async def test_new_customer_adds_address_and_orders(client: AsyncClient, test_catalog):
    """
    A phone that has never logged in:
    1. Verify the OTP, which creates the account
    2. Add an address, which becomes the default
    3. Place an order for it
    """
    code = (await client.post("/auth/otp/request", json={"phone": "+917777777777"})).json()["otp"]
    response = await client.post("/auth/otp/verify", json={"phone": "+917777777777", "otp": code})
    assert response.status_code == 200

    response = await client.post("/addresses", json=ADDRESS)
    assert response.status_code == 201
    address = response.json()
    assert address["is_default"] is True
    assert address["kind"] == "WORK"
    assert address["line1"] == "5 Park Street"

    response = await client.post(
        "/orders",
        json={
            "items": [{"test_id": str(test_catalog[0].id), "quantity": 1}],
            "address_id": address["id"],
            "scheduled_date": (date.today() + timedelta(days=1)).isoformat(),
            "scheduled_time": "07:00-08:00",
        },
    )
    assert response.status_code == 201
    assert response.json()["address_id"] == address["id"]


@pytest.mark.asyncio
async def test_new_default_replaces_old_one(customer_client: AsyncClient, test_address):
    response = await customer_client.post("/addresses", json={**ADDRESS, "is_default": True})
    new_id = response.json()["id"]

    response = await customer_client.get("/addresses")
    assert [(row["id"], row["is_default"]) for row in response.json()] == [
        (new_id, True),
        (str(test_address.id), False),
    ]

    response = await customer_client.put(f"/addresses/{test_address.id}/default")
    assert response.status_code == 200
    assert response.json()["is_default"] is True

    response = await customer_client.get(f"/addresses/{new_id}")
    assert response.json()["is_default"] is False


@pytest.mark.asyncio
async def test_second_address_is_not_default(customer_client: AsyncClient, test_address):
    response = await customer_client.post("/addresses", json=ADDRESS)

    assert response.json()["is_default"] is False


@pytest.mark.asyncio
async def test_update_address(customer_client: AsyncClient, test_address):
    response = await customer_client.put(
        f"/addresses/{test_address.id}", json={"line2": "Flat 4B", "pincode": "560002"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["line1"] == "12 MG Road"
    assert data["line2"] == "Flat 4B"
    assert data["pincode"] == "560002"
    assert data["is_default"] is True


@pytest.mark.asyncio
async def test_pincode_must_be_six_digits(customer_client: AsyncClient, test_address):
    response = await customer_client.post("/addresses", json={**ADDRESS, "pincode": "70001"})

    assert response.status_code == 400
    assert response.json()["error"]["details"]["fields"][0]["field"] == "pincode"


@pytest.mark.asyncio
async def test_other_users_address_is_not_found(other_customer_client: AsyncClient, test_address):
    response = await other_customer_client.get(f"/addresses/{test_address.id}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ADDRESS_NOT_FOUND"

    response = await other_customer_client.put(f"/addresses/{test_address.id}/default")
    assert response.status_code == 404

    response = await other_customer_client.delete(f"/addresses/{test_address.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cannot_delete_only_address(customer_client: AsyncClient, test_address):
    response = await customer_client.delete(f"/addresses/{test_address.id}")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "LAST_ADDRESS"


@pytest.mark.asyncio
async def test_deleting_default_promotes_oldest(customer_client: AsyncClient, test_address):
    older_id = (await customer_client.post("/addresses", json=ADDRESS)).json()["id"]
    newer_id = (await customer_client.post("/addresses", json={**ADDRESS, "kind": "OTHER"})).json()["id"]

    response = await customer_client.delete(f"/addresses/{test_address.id}")
    assert response.status_code == 204

    response = await customer_client.get("/addresses")
    assert [(row["id"], row["is_default"]) for row in response.json()] == [
        (older_id, True),
        (newer_id, False),
    ]


@pytest.mark.asyncio
async def test_cannot_delete_address_with_orders(customer_client: AsyncClient, test_address, place_order):
    await place_order()
    await customer_client.post("/addresses", json=ADDRESS)

    response = await customer_client.delete(f"/addresses/{test_address.id}")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ADDRESS_IN_USE"


@pytest.mark.asyncio
async def test_addresses_require_session(client: AsyncClient):
    response = await client.get("/addresses")

    assert response.status_code == 401
