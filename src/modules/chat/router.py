"""Order chat API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.modules.chat.schemas import ChatOpenUpdate, ChatResponse, MessageCreate, MessageResponse
from src.modules.chat.service import ChatService
from src.modules.files.storage import BlobStore, get_blob_store
from src.modules.identity.dependencies import get_principal
from src.modules.identity.roles import Principal

router = APIRouter(prefix="/orders/{order_id}/chat", tags=["chat"])


@router.get("", response_model=ChatResponse)
async def get_chat(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    chat = await ChatService(db).get_or_create_chat(order_id, principal)
    return ChatResponse.model_validate(chat)


@router.get("/messages", response_model=list[MessageResponse])
async def list_messages(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Messages oldest first; marks them viewed by the caller."""
    messages = await ChatService(db).list_messages(order_id, principal)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    order_id: uuid.UUID,
    body: MessageCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    message = await ChatService(db, blob_store).send_message(
        order_id, principal, body.content, body.attachment_file_ids
    )
    return MessageResponse.model_validate(message)


@router.put("/open", response_model=ChatResponse)
async def set_chat_open(
    order_id: uuid.UUID,
    body: ChatOpenUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    chat = await ChatService(db).set_chat_open(order_id, principal, body.is_open)
    return ChatResponse.model_validate(chat)
