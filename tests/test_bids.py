"""
API tests for auction bidding.
"""
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from conftest import auth

pytestmark = pytest.mark.api


@pytest.fixture
async def auction(seed, seller, category) -> str:
    return await seed.product(
        seller, category, name="Signed Guitar", price=100.0, quantity=1,
        is_auction=True, auction_end_time=datetime.utcnow() + timedelta(days=2),
    )


async def test_bids_must_increase(client, seed, buyer, auction):
    rival = await seed.user(name="Rita Rival")

    too_low = await client.post(f"/bids/{auction}", json={"amount": 90}, headers=auth(buyer))
    assert too_low.status_code == 400
    assert too_low.json()["detail"] == "Bid must be at least the starting price of 100.00"

    opening = await client.post(f"/bids/{auction}", json={"amount": 100}, headers=auth(buyer))
    assert opening.status_code == 201
    assert opening.json()["bidder_id"] == buyer

    tie = await client.post(f"/bids/{auction}", json={"amount": 100}, headers=auth(rival))
    assert tie.status_code == 400

    higher = await client.post(f"/bids/{auction}", json={"amount": 125.5}, headers=auth(rival))
    assert higher.status_code == 201

    history = (await client.get(f"/bids/product/{auction}")).json()
    assert history["total"] == 2
    assert history["highest_bid"] == 125.5
    assert history["bids"][0]["bidder"]["name"] == "Rita Rival"


async def test_bid_rules(client, seed, seller, buyer, category, product, auction):
    own = await client.post(f"/bids/{auction}", json={"amount": 200}, headers=auth(seller))
    assert own.status_code == 400

    not_auction = await client.post(f"/bids/{product}", json={"amount": 200}, headers=auth(buyer))
    assert not_auction.status_code == 400
    assert not_auction.json()["detail"] == "Product is not an auction"

    ended = await seed.product(
        seller, category, is_auction=True, auction_end_time=datetime.utcnow() - timedelta(minutes=1)
    )
    late = await client.post(f"/bids/{ended}", json={"amount": 200}, headers=auth(buyer))
    assert late.status_code == 400
    assert late.json()["detail"] == "Auction has ended"

    zero = await client.post(f"/bids/{auction}", json={"amount": 0}, headers=auth(buyer))
    assert zero.status_code == 422


async def test_my_bids_show_leader(client, seed, buyer, auction):
    rival = await seed.user(name="Rita Rival")
    await client.post(f"/bids/{auction}", json={"amount": 100}, headers=auth(buyer))
    await client.post(f"/bids/{auction}", json={"amount": 150}, headers=auth(rival))

    mine = (await client.get("/bids/me", headers=auth(buyer))).json()
    assert mine["total"] == 1
    assert mine["bids"][0]["is_highest"] is False
    assert mine["bids"][0]["is_auction_ended"] is False
    assert mine["bids"][0]["product"]["name"] == "Signed Guitar"

    theirs = (await client.get("/bids/me", headers=auth(rival))).json()
    assert theirs["bids"][0]["is_highest"] is True


async def test_won_auctions(client, db, buyer, auction):
    await client.post(f"/bids/{auction}", json={"amount": 110}, headers=auth(buyer))
    assert (await client.get("/bids/won", headers=auth(buyer))).json() == []

    # Close the auction
    await db.products.update_one(
        {"_id": ObjectId(auction)},
        {"$set": {"auction_end_time": datetime.utcnow() - timedelta(hours=1)}}
    )

    won = (await client.get("/bids/won", headers=auth(buyer))).json()
    assert len(won) == 1
    assert won[0]["winning_bid"]["amount"] == 110
    assert won[0]["product"]["id"] == auction
