"""
Payment routes: saved payment methods, PayPal checkout and transactions.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import PaymentMethodDocument, TransactionDocument
from ..models.enums import OrderStatus, PaymentProvider, TransactionStatus, TransactionType
from ..schemas.payment import (
    AddPaymentMethodRequest,
    PaymentMethodResponse,
    PayPalCaptureRequest,
    PayPalCaptureResponse,
    PayPalCreateOrderRequest,
    RefundRequest,
    TransactionResponse,
    TransactionsListResponse,
)
from ..services.orders import mark_order_paid, record_payment
from ..services.paypal import PayPalClient, PayPalError, capture_amounts, get_paypal_client
from ..utils.dependencies import (
    CurrentUser,
    ensure_order_participant,
    fetch_page,
    get_current_user,
    verify_document_exists,
    verify_order_exists,
)
from ..utils.serializers import convert_object_ids, serialize_doc, serialize_docs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


async def owned_method(db: AsyncIOMotorDatabase, method_id: str, user: CurrentUser) -> Dict[str, Any]:
    method = await verify_document_exists(db.payment_methods, method_id, "payment method")
    if method["user_id"] != user.id:
        raise HTTPException(status_code=403, detail="This payment method belongs to another user")
    return method


async def set_default_method(db: AsyncIOMotorDatabase, user_id: ObjectId, method_id: ObjectId) -> None:
    now = datetime.utcnow()
    await db.payment_methods.update_many(
        {"user_id": user_id, "_id": {"$ne": method_id}, "is_default": True},
        {"$set": {"is_default": False, "updated_at": now}}
    )
    await db.payment_methods.update_one({"_id": method_id}, {"$set": {"is_default": True, "updated_at": now}})


async def with_orders(db: AsyncIOMotorDatabase, transactions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach an order summary to each transaction."""
    order_ids = list({t["order_id"] for t in transactions if t.get("order_id")})
    orders = {
        order["_id"]: {"order_number": order["order_number"], "status": order["status"], "total": order["total"]}
        for order in await db.orders.find({"_id": {"$in": order_ids}}).to_list(length=None)
    }
    return [convert_object_ids({**t, "order": orders.get(t.get("order_id"))}) for t in transactions]


async def refunded_total(db: AsyncIOMotorDatabase, payment_id: ObjectId) -> float:
    refunds = await db.transactions.find({
        "type": TransactionType.REFUND.value,
        "metadata.refunded_transaction_id": payment_id,
    }).to_list(length=None)
    return round(sum(refund["amount"] for refund in refunds), 2)


async def list_transactions(
    db: AsyncIOMotorDatabase, owner_field: str, user: CurrentUser,
    type: Optional[TransactionType], status: Optional[TransactionStatus], limit: int, offset: int
) -> Dict[str, Any]:
    filter_query: Dict[str, Any] = {owner_field: user.id}
    if type is not None:
        filter_query["type"] = type.value
    if status is not None:
        filter_query["status"] = status.value

    docs, total = await fetch_page(db.transactions, filter_query, [("created_at", -1)], limit, offset)
    return {
        "transactions": await with_orders(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


# Payment methods

@router.post("/methods", status_code=201, response_model=PaymentMethodResponse)
async def add_payment_method(
    payload: AddPaymentMethodRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Save a payment method; the first one becomes the default"""
    try:
        is_first = await db.payment_methods.count_documents({"user_id": user.id}) == 0
        document = PaymentMethodDocument(user_id=user.id, type=payload.type, details=payload.details)
        result = await db.payment_methods.insert_one(document.to_mongo())

        if is_first or payload.set_default:
            await set_default_method(db, user.id, result.inserted_id)

        logger.info(f"Payment method {payload.type.value} added for {user.id}")
        return serialize_doc(await db.payment_methods.find_one({"_id": result.inserted_id}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to add payment method: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to add payment method: {str(e)}")


@router.get("/methods", response_model=List[PaymentMethodResponse])
async def list_payment_methods(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    cursor = db.payment_methods.find({"user_id": user.id}).sort([("is_default", -1), ("created_at", -1)])
    return serialize_docs(await cursor.to_list(length=None))


@router.put("/methods/{method_id}/default", response_model=PaymentMethodResponse)
async def make_default_payment_method(
    method_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    method = await owned_method(db, method_id, user)
    await set_default_method(db, user.id, method["_id"])
    return serialize_doc(await db.payment_methods.find_one({"_id": method["_id"]}))


@router.delete("/methods/{method_id}", status_code=204)
async def delete_payment_method(
    method_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Remove a payment method; a removed default hands over to the newest remaining one"""
    method = await owned_method(db, method_id, user)
    await db.payment_methods.delete_one({"_id": method["_id"]})

    if method.get("is_default"):
        newest = await db.payment_methods.find({"user_id": user.id}).sort("created_at", -1).limit(1).to_list(length=1)
        if newest:
            await set_default_method(db, user.id, newest[0]["_id"])

    logger.info(f"Payment method {method_id} removed")
    return None


# PayPal

@router.post("/paypal/create-order")
async def create_paypal_order(
    payload: PayPalCreateOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    paypal: PayPalClient = Depends(get_paypal_client)
):
    """Open a PayPal checkout; a marketplace order fixes the amount to its total"""
    amount = payload.amount
    if payload.order_id:
        order = await verify_order_exists(payload.order_id, db)
        if order["buyer_id"] != user.id:
            raise HTTPException(status_code=403, detail="Only the buyer can pay for this order")
        if order["status"] != OrderStatus.PENDING.value:
            raise HTTPException(status_code=400, detail=f"Order is {order['status']}, not pending")
        amount = order["total"]

    try:
        result = await run_in_threadpool(paypal.create_order, amount, payload.currency, payload.description)
    except PayPalError as e:
        raise HTTPException(status_code=502, detail=str(e))

    logger.info(f"💳 PayPal order {result.get('id')} created for {user.id} ({amount:.2f} {payload.currency})")
    return result


@router.post("/paypal/capture", response_model=PayPalCaptureResponse)
async def capture_paypal_payment(
    payload: PayPalCaptureRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    paypal: PayPalClient = Depends(get_paypal_client)
):
    """Capture an approved PayPal checkout and record the payment"""
    order = None
    if payload.order_id:
        order = await verify_order_exists(payload.order_id, db)
        if order["buyer_id"] != user.id:
            raise HTTPException(status_code=403, detail="Only the buyer can pay for this order")

    try:
        capture = await run_in_threadpool(paypal.capture_order, payload.paypal_order_id)
        amounts = capture_amounts(capture)
    except PayPalError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except (KeyError, IndexError, ValueError) as e:
        logger.error(f"Unexpected PayPal capture payload: {e}")
        raise HTTPException(status_code=502, detail="Unexpected response from PayPal")

    if order is not None:
        if order["status"] == OrderStatus.PENDING.value:
            await mark_order_paid(db, order, "paypal")
        transaction = await record_payment(
            db, order, PaymentProvider.PAYPAL,
            amount=amounts["amount"],
            provider_transaction_id=capture.get("id"),
            provider_fee=amounts["fee"],
            metadata=capture,
        )
    else:
        document = TransactionDocument(
            user_id=user.id,
            amount=amounts["amount"],
            type=TransactionType.PAYMENT,
            status=TransactionStatus.COMPLETED,
            provider=PaymentProvider.PAYPAL,
            provider_transaction_id=capture.get("id"),
            provider_fee=amounts["fee"],
            metadata=capture,
            completed_at=datetime.utcnow(),
        )
        result = await db.transactions.insert_one(document.to_mongo())
        transaction = await db.transactions.find_one({"_id": result.inserted_id})

    logger.info(f"💳 PayPal capture {capture.get('id')} recorded as transaction {transaction['_id']}")
    return {"capture_details": capture, "transaction": serialize_doc(transaction)}


# Transactions

@router.get("/transactions/buyer", response_model=TransactionsListResponse)
async def get_buyer_transactions(
    type: Optional[TransactionType] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return await list_transactions(db, "user_id", user, type, status, limit, offset)


@router.get("/transactions/seller", response_model=TransactionsListResponse)
async def get_seller_transactions(
    type: Optional[TransactionType] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return await list_transactions(db, "seller_id", user, type, status, limit, offset)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    transaction = await verify_document_exists(db.transactions, transaction_id, "transaction")
    if not (user.is_admin or user.id in (transaction["user_id"], transaction.get("seller_id"))):
        raise HTTPException(status_code=403, detail="You are not allowed to view this transaction")
    return (await with_orders(db, [transaction]))[0]


@router.get("/orders/{order_id}/transactions", response_model=List[TransactionResponse])
async def get_order_transactions(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    order = await verify_order_exists(order_id, db)
    ensure_order_participant(order, user)
    transactions = await db.transactions.find({"order_id": order["_id"]}).sort("created_at", 1).to_list(length=None)
    return await with_orders(db, transactions)


@router.post("/transactions/{transaction_id}/refund", response_model=TransactionResponse)
async def refund_transaction(
    transaction_id: str,
    payload: RefundRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Refund all or part of a completed payment"""
    try:
        original = await verify_document_exists(db.transactions, transaction_id, "transaction")

        order = await db.orders.find_one({"_id": original["order_id"]}) if original.get("order_id") else None
        is_seller = original.get("seller_id") == user.id or (
            order is not None and any(item["seller_id"] == user.id for item in order["items"])
        )
        if not (user.is_admin or is_seller):
            raise HTTPException(status_code=403, detail="Only an admin or the seller can issue refunds")

        if original["type"] != TransactionType.PAYMENT.value or original["status"] != TransactionStatus.COMPLETED.value:
            raise HTTPException(status_code=400, detail="Only completed payments can be refunded")

        already_refunded = await refunded_total(db, original["_id"])
        remaining = round(original["amount"] - already_refunded, 2)
        amount = payload.amount if payload.amount is not None else remaining
        if amount > remaining:
            raise HTTPException(
                status_code=400,
                detail=f"Refund cannot exceed the remaining {remaining:.2f} of the original payment"
            )

        now = datetime.utcnow()
        refund = TransactionDocument(
            order_id=original.get("order_id"),
            user_id=original["user_id"],
            seller_id=original.get("seller_id"),
            amount=amount,
            type=TransactionType.REFUND,
            status=TransactionStatus.COMPLETED,
            provider=original.get("provider", PaymentProvider.SYSTEM.value),
            notes=payload.reason,
            metadata={"refunded_transaction_id": original["_id"]},
            completed_at=now,
        )
        result = await db.transactions.insert_one(refund.to_mongo())

        if round(already_refunded + amount, 2) >= original["amount"]:
            await db.transactions.update_one(
                {"_id": original["_id"]},
                {"$set": {"status": TransactionStatus.REFUNDED.value, "updated_at": now}}
            )
            if order is not None:
                await db.orders.update_one(
                    {"_id": order["_id"]},
                    {"$set": {"status": OrderStatus.REFUNDED.value, "updated_at": now}}
                )

        logger.info(f"💸 Refund of {amount:.2f} issued for transaction {transaction_id}")
        created = await db.transactions.find_one({"_id": result.inserted_id})
        return (await with_orders(db, [created]))[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to refund transaction {transaction_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to refund transaction: {str(e)}")
