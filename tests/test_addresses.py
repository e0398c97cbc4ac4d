"""
API tests for the address book.
"""
import pytest

from conftest import auth

pytestmark = pytest.mark.api


def address_payload(**overrides):
    payload = {
        "name": "Jamie Doe",
        "phone": "555-0100",
        "address_line1": "1 Main Street",
        "city": "Springfield",
        "state": "IL",
        "postal_code": "62701",
        "country": "US",
    }
    payload.update(overrides)
    return payload


async def test_first_address_becomes_default(client, buyer):
    first = await client.post("/addresses", json=address_payload(), headers=auth(buyer))
    assert first.status_code == 201
    assert first.json()["is_default"] is True
    assert first.json()["user_id"] == buyer

    second = await client.post("/addresses", json=address_payload(city="Shelbyville"), headers=auth(buyer))
    assert second.json()["is_default"] is False

    default = (await client.get("/addresses/default", headers=auth(buyer))).json()
    assert default["_id"] == first.json()["_id"]


async def test_new_default_replaces_old_one(client, buyer):
    first = (await client.post("/addresses", json=address_payload(), headers=auth(buyer))).json()
    second = (await client.post(
        "/addresses", json=address_payload(city="Capital City", is_default=True), headers=auth(buyer)
    )).json()
    assert second["is_default"] is True

    listing = (await client.get("/addresses", headers=auth(buyer))).json()
    assert listing["total"] == 2
    assert listing["addresses"][0]["_id"] == second["_id"]

    switched = await client.post("/addresses/default", json={"address_id": first["_id"]}, headers=auth(buyer))
    assert switched.status_code == 200
    assert switched.json()["is_default"] is True

    refreshed = (await client.get(f"/addresses/{second['_id']}", headers=auth(buyer))).json()
    assert refreshed["is_default"] is False


async def test_deleting_default_promotes_another(client, buyer):
    first = (await client.post("/addresses", json=address_payload(), headers=auth(buyer))).json()
    await client.post("/addresses", json=address_payload(city="Ogdenville"), headers=auth(buyer))
    await client.post("/addresses", json=address_payload(city="North Haverbrook"), headers=auth(buyer))

    response = await client.delete(f"/addresses/{first['_id']}", headers=auth(buyer))
    assert response.status_code == 204

    remaining = (await client.get("/addresses", headers=auth(buyer))).json()["addresses"]
    assert len(remaining) == 2
    assert sum(1 for address in remaining if address["is_default"]) == 1


async def test_addresses_are_private(client, seed, buyer):
    stranger = await seed.user(name="Stranger")
    address = (await client.post("/addresses", json=address_payload(), headers=auth(buyer))).json()

    assert (await client.get(f"/addresses/{address['_id']}", headers=auth(stranger))).status_code == 404
    assert (await client.put(
        f"/addresses/{address['_id']}", json={"city": "Elsewhere"}, headers=auth(stranger)
    )).status_code == 404
    assert (await client.get("/addresses/default", headers=auth(stranger))).status_code == 404


async def test_update_address(client, buyer):
    address = (await client.post("/addresses", json=address_payload(), headers=auth(buyer))).json()

    response = await client.put(
        f"/addresses/{address['_id']}", json={"address_line2": "Apt 4"}, headers=auth(buyer)
    )
    assert response.status_code == 200
    assert response.json()["address_line2"] == "Apt 4"
    assert response.json()["city"] == "Springfield"
