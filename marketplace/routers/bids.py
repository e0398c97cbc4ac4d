"""
Auction bidding routes.

A bid is accepted when it beats the current highest bid, or meets the
listing price when there is none. Auctions are not closed by a scheduler;
the end time only gates new bids and decides the winner on read.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import BidDocument
from ..models.enums import ProductStatus
from ..schemas.bid import (
    BidResponse,
    MyBidsResponse,
    PlaceBidRequest,
    ProductBidsResponse,
    WonAuctionResponse,
)
from ..services.inventory import primary_image
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    user_summaries,
    verify_product_exists,
)
from ..utils.serializers import convert_object_ids, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bids", tags=["Bids"])


async def highest_bid(db: AsyncIOMotorDatabase, product_id: ObjectId) -> Optional[Dict[str, Any]]:
    bids = await db.bids.find({"product_id": product_id}).sort("amount", -1).limit(1).to_list(length=1)
    return bids[0] if bids else None


def auction_ended(product: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    end_time = product.get("auction_end_time")
    return end_time is not None and end_time < (now or datetime.utcnow())


def auction_summary(product: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(product["_id"]),
        "name": product["name"],
        "price": product["price"],
        "image": primary_image(product),
        "status": product["status"],
        "auction_end_time": product.get("auction_end_time"),
    }


@router.post("/{product_id}", status_code=201, response_model=BidResponse)
async def place_bid(
    product_id: str,
    payload: PlaceBidRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Place a bid on an auction listing"""
    try:
        product = await verify_product_exists(product_id, db)

        if product["status"] != ProductStatus.ACTIVE.value:
            raise HTTPException(status_code=400, detail="Product is not available for bidding")
        if not product.get("is_auction"):
            raise HTTPException(status_code=400, detail="Product is not an auction")
        if auction_ended(product):
            raise HTTPException(status_code=400, detail="Auction has ended")
        if product["seller_id"] == user.id:
            raise HTTPException(status_code=400, detail="You cannot bid on your own product")

        current = await highest_bid(db, product["_id"])
        if current is not None:
            if payload.amount <= current["amount"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Bid must be higher than the current highest bid of {current['amount']:.2f}"
                )
        elif payload.amount < product["price"]:
            raise HTTPException(
                status_code=400,
                detail=f"Bid must be at least the starting price of {product['price']:.2f}"
            )

        document = BidDocument(product_id=product["_id"], bidder_id=user.id, amount=payload.amount)
        result = await db.bids.insert_one(document.to_mongo())

        logger.info(f"🔨 Bid {payload.amount:.2f} on {product_id} by {user.id}")
        return serialize_doc(await db.bids.find_one({"_id": result.inserted_id}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to place bid on {product_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to place bid: {str(e)}")


@router.get("/product/{product_id}", response_model=ProductBidsResponse)
async def get_product_bids(
    product_id: str,
    sort: str = Query("amount", pattern="^(amount|created_at)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Bid history of a product with bidder summaries"""
    product = await verify_product_exists(product_id, db)

    docs, total = await fetch_page(
        db.bids, {"product_id": product["_id"]}, [(sort, 1 if order == "asc" else -1)], limit, offset
    )
    bidders = await user_summaries(db, [bid["bidder_id"] for bid in docs])
    current = await highest_bid(db, product["_id"])

    return {
        "bids": [convert_object_ids({**bid, "bidder": bidders.get(bid["bidder_id"])}) for bid in docs],
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
        "highest_bid": current["amount"] if current else None,
    }


@router.get("/me", response_model=MyBidsResponse)
async def get_my_bids(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """The caller's bids with the state of each auction"""
    docs, total = await fetch_page(db.bids, {"bidder_id": user.id}, [("created_at", -1)], limit, offset)

    product_ids = list({bid["product_id"] for bid in docs})
    products = {
        product["_id"]: product
        for product in await db.products.find({"_id": {"$in": product_ids}}).to_list(length=None)
    }
    leaders = {product_id: await highest_bid(db, product_id) for product_id in product_ids}

    now = datetime.utcnow()
    bids: List[Dict[str, Any]] = []
    for bid in docs:
        product = products.get(bid["product_id"])
        leader = leaders.get(bid["product_id"])
        bids.append({
            **convert_object_ids(bid),
            "product": auction_summary(product) if product else None,
            "is_highest": leader is not None and leader["_id"] == bid["_id"],
            "is_auction_ended": auction_ended(product, now) if product else True,
        })

    return {"bids": bids, "total": total, "limit": limit, "offset": offset, "has_more": offset + limit < total}


@router.get("/won", response_model=List[WonAuctionResponse])
async def get_won_auctions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Ended auctions where the caller holds the highest bid"""
    product_ids = await db.bids.distinct("product_id", {"bidder_id": user.id})
    ended = await db.products.find({
        "_id": {"$in": product_ids},
        "is_auction": True,
        "auction_end_time": {"$lt": datetime.utcnow()},
    }).sort("auction_end_time", -1).to_list(length=None)

    won = []
    for product in ended:
        leader = await highest_bid(db, product["_id"])
        if leader is not None and leader["bidder_id"] == user.id:
            won.append({"product": auction_summary(product), "winning_bid": serialize_doc(leader)})
    return won
