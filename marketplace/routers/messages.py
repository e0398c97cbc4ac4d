"""
Buyer/seller messaging routes and the live messaging WebSocket.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from ..config.database import get_database
from ..config.settings import get_settings
from ..models import MessageDocument
from ..schemas.message import (
    ConversationMessagesResponse,
    ConversationSummary,
    MarkedReadResponse,
    MessageResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from ..services.realtime import ConnectionManager, event_payload, get_connection_manager
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    user_summaries,
    validate_object_id,
    verify_document_exists,
)
from ..utils.serializers import convert_object_ids, page_payload, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


async def store_message(db: AsyncIOMotorDatabase, sender_id: ObjectId, payload: SendMessageRequest) -> Dict[str, Any]:
    """
    Persist a message

    Raises:
        HTTPException: 400 when the sender addresses themselves
    """
    receiver_id = ObjectId(payload.receiver_id)
    if receiver_id == sender_id:
        raise HTTPException(status_code=400, detail="You cannot send a message to yourself")

    document = MessageDocument(
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=payload.content,
        related_order_id=ObjectId(payload.related_order_id) if payload.related_order_id else None,
        related_product_id=ObjectId(payload.related_product_id) if payload.related_product_id else None,
    )
    result = await db.messages.insert_one(document.to_mongo())
    return await db.messages.find_one({"_id": result.inserted_id})


async def mark_message_read(db: AsyncIOMotorDatabase, message_id: str, reader_id: ObjectId) -> Dict[str, Any]:
    """
    Mark a message as read by its receiver

    Raises:
        HTTPException: 404 for unknown messages, 403 when the reader is not the receiver
    """
    message = await verify_document_exists(db.messages, message_id, "message")
    if message["receiver_id"] != reader_id:
        raise HTTPException(status_code=403, detail="Only the receiver can mark a message as read")

    if not message.get("read"):
        now = datetime.utcnow()
        await db.messages.update_one({"_id": message["_id"]}, {"$set": {"read": True, "read_at": now}})
        message.update(read=True, read_at=now)
    return message


async def mark_conversation_read(db: AsyncIOMotorDatabase, reader_id: ObjectId, partner_id: ObjectId) -> int:
    result = await db.messages.update_many(
        {"sender_id": partner_id, "receiver_id": reader_id, "read": False},
        {"$set": {"read": True, "read_at": datetime.utcnow()}}
    )
    return result.modified_count


async def conversation_summaries(db: AsyncIOMotorDatabase, user_id: ObjectId,
                                 limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """One entry per conversation partner, most recent conversation first."""
    cursor = db.messages.find({"$or": [{"sender_id": user_id}, {"receiver_id": user_id}]}).sort("created_at", -1)
    messages = await cursor.to_list(length=None)

    conversations: Dict[ObjectId, Dict[str, Any]] = {}
    for message in messages:
        partner_id = message["receiver_id"] if message["sender_id"] == user_id else message["sender_id"]
        entry = conversations.get(partner_id)
        if entry is None:
            if limit is not None and len(conversations) >= limit:
                continue
            entry = conversations[partner_id] = {
                "user_id": partner_id,
                "last_message": {**message, "is_from_me": message["sender_id"] == user_id},
                "unread_count": 0,
            }
        if message["receiver_id"] == user_id and not message.get("read"):
            entry["unread_count"] += 1

    partners = await user_summaries(db, list(conversations.keys()))
    return [
        convert_object_ids({**entry, "user": partners.get(partner_id)})
        for partner_id, entry in conversations.items()
    ]


@router.post("", status_code=201, response_model=MessageResponse)
async def send_message(
    payload: SendMessageRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    """Send a message; connected receivers get it live"""
    try:
        message = serialize_doc(await store_message(db, user.id, payload))
        await manager.send_to_user(payload.receiver_id, "receive_message", message)
        logger.info(f"✉️  Message {message['_id']} from {user.id} to {payload.receiver_id}")
        return message

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to send message: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to send message: {str(e)}")


@router.get("/conversation/{user_id}", response_model=ConversationMessagesResponse)
async def get_conversation(
    user_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Messages with one partner, newest first; incoming ones are marked read"""
    partner_id = validate_object_id(user_id, "user")
    filter_query = {"$or": [
        {"sender_id": user.id, "receiver_id": partner_id},
        {"sender_id": partner_id, "receiver_id": user.id},
    ]}

    docs, total = await fetch_page(db.messages, filter_query, [("created_at", -1)], limit, offset)
    await mark_conversation_read(db, user.id, partner_id)

    people = await user_summaries(db, [user.id, partner_id])
    return {
        **page_payload("messages", docs, total, limit, offset),
        "me": serialize_doc(people.get(user.id)),
        "partner": serialize_doc(people.get(partner_id)),
    }


@router.get("/conversations", response_model=List[ConversationSummary])
async def get_conversations(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return await conversation_summaries(db, user.id)


@router.get("/conversations/recent", response_model=List[ConversationSummary])
async def get_recent_conversations(
    limit: Optional[int] = Query(None, ge=1, le=50),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return await conversation_summaries(db, user.id, limit or get_settings().recent_conversations_limit)


@router.get("/unread/count", response_model=UnreadCountResponse)
async def get_unread_count(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    count = await db.messages.count_documents({"receiver_id": user.id, "read": False})
    return {"unread_count": count}


@router.put("/conversation/{user_id}/read-all", response_model=MarkedReadResponse)
async def mark_all_read(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    partner_id = validate_object_id(user_id, "user")
    return {"marked": await mark_conversation_read(db, user.id, partner_id)}


@router.put("/{message_id}/read", response_model=MessageResponse)
async def mark_as_read(
    message_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    message = serialize_doc(await mark_message_read(db, message_id, user.id))
    await manager.send_to_user(message["sender_id"], "message_read_by_receiver", {"message_id": message["_id"]})
    return message


@router.websocket("/ws")
async def messaging_socket(
    websocket: WebSocket,
    user_id: str = Query(..., description="Authenticated user ID forwarded by the gateway"),
    db: AsyncIOMotorDatabase = Depends(get_database),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    """
    Live messaging channel

    Client events: send_message, mark_as_read, typing, stop_typing.
    Every frame is {"event": ..., "data": {...}}.
    """
    if not ObjectId.is_valid(user_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    sender_id = ObjectId(user_id)
    await manager.connect(user_id, websocket)
    try:
        while True:
            try:
                frame = json.loads(await websocket.receive_text())
            except ValueError:
                await websocket.send_json(event_payload("message_error", {"error": "Frames must be JSON"}))
                continue

            event = frame.get("event") if isinstance(frame, dict) else None
            data = (frame.get("data") or {}) if isinstance(frame, dict) else {}
            if not isinstance(data, dict):
                await websocket.send_json(event_payload("message_error", {"error": "Event data must be an object"}))
                continue

            try:
                if event == "send_message":
                    payload = SendMessageRequest(**data)
                    message = serialize_doc(await store_message(db, sender_id, payload))
                    await manager.send_to_user(payload.receiver_id, "receive_message", message)
                    await websocket.send_json(event_payload("message_sent", message))

                elif event == "mark_as_read":
                    message = serialize_doc(await mark_message_read(db, str(data.get("message_id", "")), sender_id))
                    await websocket.send_json(event_payload("message_marked_read", {"message_id": message["_id"]}))
                    await manager.send_to_user(
                        message["sender_id"], "message_read_by_receiver", {"message_id": message["_id"]}
                    )

                elif event in ("typing", "stop_typing"):
                    receiver_id = str(data.get("receiver_id", ""))
                    outgoing = "user_typing" if event == "typing" else "user_stop_typing"
                    await manager.send_to_user(receiver_id, outgoing, {"user_id": user_id})

                else:
                    await websocket.send_json(event_payload("message_error", {"error": f"Unknown event: {event}"}))

            except ValidationError as e:
                errors = [error["msg"] for error in e.errors()]
                await websocket.send_json(event_payload("message_error", {"error": "Invalid message", "detail": errors}))
            except HTTPException as e:
                await websocket.send_json(event_payload("message_error", {"error": e.detail}))

    except WebSocketDisconnect:
        logger.debug(f"Socket closed by user {user_id}")
    finally:
        manager.disconnect(user_id, websocket)
