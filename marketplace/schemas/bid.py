"""
Bid API schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .common import DocumentResponse, PageMeta


class PlaceBidRequest(BaseModel):
    amount: float = Field(..., gt=0, description="Bid amount")


class BidResponse(DocumentResponse):
    product_id: str
    bidder_id: str
    amount: float


class ProductBidResponse(BidResponse):
    bidder: Optional[Dict[str, Any]] = Field(None, description="Bidder name, username and avatar")


class ProductBidsResponse(PageMeta):
    bids: List[ProductBidResponse]
    highest_bid: Optional[float] = None


class AuctionSummary(BaseModel):
    id: str
    name: str
    price: float
    image: Optional[str] = None
    status: str
    auction_end_time: Optional[datetime] = None


class MyBidResponse(BidResponse):
    """A bid of the caller with the auction's current state."""
    product: Optional[AuctionSummary] = None
    is_highest: bool
    is_auction_ended: bool


class MyBidsResponse(PageMeta):
    bids: List[MyBidResponse]


class WonAuctionResponse(BaseModel):
    product: AuctionSummary
    winning_bid: BidResponse
