"""Conversation persistence endpoints for signed-in users."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..auth import current_user_id, get_database
from ..db import ConversationRecord, Database, MessageRecord, utcnow
from ..logging import get_logger
from ..schemas import (
    AddMessageRequest,
    Conversation,
    CreateConversationRequest,
    Message,
    Role,
    SuccessResponse,
)

logger = get_logger(__name__)

DEFAULT_TITLE = "New Chat"

router = APIRouter(prefix="/api", tags=["conversations"])


def _message_out(record: MessageRecord) -> Message:
    return Message(id=str(record.id), role=Role(record.role), content=record.content, timestamp=record.created_at)


def _conversation_out(record: ConversationRecord, messages: List[MessageRecord]) -> Conversation:
    return Conversation(
        id=str(record.id),
        title=record.title,
        messages=[_message_out(message) for message in messages],
        created_at=record.created_at,
    )


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


@router.get("/health")
async def healthcheck(request: Request) -> dict[str, object]:
    """Liveness plus whether the account features are enabled."""

    return {"status": "ok", "database": request.app.state.database is not None}


@router.get("/conversations", response_model=List[Conversation])
def list_conversations(
    database: Database = Depends(get_database),
    user_id: int = Depends(current_user_id),
) -> List[Conversation]:
    """All of the caller's conversations, most recently updated first."""

    with database.session() as session:
        records = session.scalars(
            select(ConversationRecord)
            .where(ConversationRecord.user_id == user_id)
            .options(selectinload(ConversationRecord.messages))
            .order_by(ConversationRecord.updated_at.desc(), ConversationRecord.id.desc())
        ).all()
        return [_conversation_out(record, record.messages) for record in records]


@router.post("/conversations", response_model=Conversation)
def create_conversation(
    payload: CreateConversationRequest | None = None,
    database: Database = Depends(get_database),
    user_id: int = Depends(current_user_id),
) -> Conversation:
    title = (payload.title if payload else None) or DEFAULT_TITLE
    with database.session() as session:
        record = ConversationRecord(user_id=user_id, title=title)
        session.add(record)
        session.flush()
        created = _conversation_out(record, [])
    logger.info("conversation created", user_id=user_id, conversation_id=created.id)
    return created


@router.post("/conversations/{conversation_id}/messages", response_model=Message)
def add_message(
    conversation_id: str,
    payload: AddMessageRequest,
    database: Database = Depends(get_database),
    user_id: int = Depends(current_user_id),
) -> Message:
    """Append a message to one of the caller's conversations."""

    key = _parse_id(conversation_id)
    with database.session() as session:
        conversation = None
        if key is not None:
            conversation = session.scalar(
                select(ConversationRecord).where(
                    ConversationRecord.id == key,
                    ConversationRecord.user_id == user_id,
                )
            )
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")

        record = MessageRecord(conversation_id=conversation.id, role=payload.role.value, content=payload.content)
        session.add(record)
        conversation.updated_at = utcnow()
        session.flush()
        return _message_out(record)


@router.delete("/conversations/{conversation_id}", response_model=SuccessResponse)
def delete_conversation(
    conversation_id: str,
    database: Database = Depends(get_database),
    user_id: int = Depends(current_user_id),
) -> SuccessResponse:
    """Delete one of the caller's conversations. Unknown ids are ignored."""

    key = _parse_id(conversation_id)
    if key is None:
        return SuccessResponse()
    with database.session() as session:
        record = session.scalar(
            select(ConversationRecord).where(
                ConversationRecord.id == key,
                ConversationRecord.user_id == user_id,
            )
        )
        if record is None:
            return SuccessResponse()
        session.delete(record)
    logger.info("conversation deleted", user_id=user_id, conversation_id=key)
    return SuccessResponse()
