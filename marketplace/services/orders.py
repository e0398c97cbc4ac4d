"""
Order helpers shared by checkout, payments and shipping.
"""
import logging
import random
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..models import TransactionDocument
from ..models.enums import OrderStatus, PaymentProvider, TransactionStatus, TransactionType

logger = logging.getLogger(__name__)

# Orders in these states count toward seller revenue
REVENUE_STATUSES = [OrderStatus.PAID.value, OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value]

# Orders in these states can no longer be cancelled
FINAL_STATUSES = {
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.RETURNED.value,
    OrderStatus.REFUNDED.value,
}


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def single_seller(order: Dict[str, Any]) -> Optional[ObjectId]:
    """The seller of the order when every item comes from the same one."""
    sellers = {item["seller_id"] for item in order.get("items", [])}
    return sellers.pop() if len(sellers) == 1 else None


async def record_payment(
    db: AsyncIOMotorDatabase,
    order: Dict[str, Any],
    provider: PaymentProvider,
    amount: Optional[float] = None,
    provider_transaction_id: Optional[str] = None,
    provider_fee: float = 0,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Store a completed payment transaction for an order."""
    now = datetime.utcnow()
    transaction = TransactionDocument(
        order_id=order["_id"],
        user_id=order["buyer_id"],
        seller_id=single_seller(order),
        amount=order["total"] if amount is None else amount,
        type=TransactionType.PAYMENT,
        status=TransactionStatus.COMPLETED,
        provider=provider,
        provider_transaction_id=provider_transaction_id,
        provider_fee=provider_fee,
        metadata=metadata or {},
        completed_at=now,
    )
    result = await db.transactions.insert_one(transaction.to_mongo())
    return await db.transactions.find_one({"_id": result.inserted_id})


async def mark_order_paid(db: AsyncIOMotorDatabase, order: Dict[str, Any],
                          payment_method: Optional[str] = None) -> None:
    changes: Dict[str, Any] = {
        "status": OrderStatus.PAID.value,
        "payment_status": True,
        "updated_at": datetime.utcnow(),
    }
    if payment_method:
        changes["payment_method"] = payment_method
    await db.orders.update_one({"_id": order["_id"]}, {"$set": changes})
    logger.info(f"💳 Order {order['order_number']} paid")


def seller_items(order: Dict[str, Any], seller_id: ObjectId) -> List[Dict[str, Any]]:
    return [item for item in order.get("items", []) if item["seller_id"] == seller_id]


async def credit_store_sales(db: AsyncIOMotorDatabase, order: Dict[str, Any]) -> None:
    """Add the delivered quantities to each seller's store total_sales."""
    sold: Dict[ObjectId, int] = {}
    for item in order.get("items", []):
        sold[item["seller_id"]] = sold.get(item["seller_id"], 0) + item["quantity"]
    for seller_id, quantity in sold.items():
        await db.stores.update_one({"seller_id": seller_id}, {"$inc": {"total_sales": quantity}})
