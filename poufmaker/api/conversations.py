# poufmaker/api/conversations.py
# Роуты чата: беседы и сообщения. Писать может и аноним.
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from poufmaker.api.deps import get_db, get_optional_principal, get_principal
from poufmaker.core.security import Principal
from poufmaker.schemas import (
    ChatMessageOut,
    ConversationCreate,
    ConversationCreated,
    ConversationOut,
    MessageCreate,
    MessageOut,
)
from poufmaker.services import conversations

router = APIRouter()


@router.get("", response_model=List[ConversationOut])
def list_conversations(
    user_id: str | None = Query(None, alias="userId"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    result = []
    for c in conversations.list_conversations(db, principal, user_id):
        out = ConversationOut.model_validate(c)
        # в списке — только последнее сообщение
        out.messages = out.messages[:1]
        result.append(out)
    return result


@router.post("", response_model=ConversationCreated, status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    principal: Principal | None = Depends(get_optional_principal),
    db: Session = Depends(get_db),
):
    conversation, message = conversations.create_conversation(
        db,
        principal,
        payload.initial_message,
        user_name=payload.user_name,
        user_phone=payload.user_phone,
    )
    return ConversationCreated(
        conversation=ConversationOut.model_validate(conversation),
        message=ChatMessageOut.model_validate(message),
    )


@router.get("/{conversation_id}", response_model=ConversationOut)
def get_conversation(conversation_id: str, db: Session = Depends(get_db)):
    return ConversationOut.model_validate(conversations.get_conversation(db, conversation_id))


@router.delete("/{conversation_id}", response_model=MessageOut)
def delete_conversation(
    conversation_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    conversations.delete_conversation(db, principal, conversation_id)
    return MessageOut(message="Conversation deleted successfully")


@router.get("/{conversation_id}/messages", response_model=List[ChatMessageOut])
def list_messages(
    conversation_id: str,
    limit: int = Query(conversations.DEFAULT_MESSAGES_LIMIT),
    before: datetime | None = Query(None),
    db: Session = Depends(get_db),
):
    messages = conversations.list_messages(db, conversation_id, limit=limit, before=before)
    return [ChatMessageOut.model_validate(m) for m in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=ChatMessageOut,
    status_code=status.HTTP_201_CREATED,
)
def append_message(conversation_id: str, payload: MessageCreate, db: Session = Depends(get_db)):
    message = conversations.append_message(db, conversation_id, payload.content, payload.is_user)
    return ChatMessageOut.model_validate(message)
