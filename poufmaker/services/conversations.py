# poufmaker/services/conversations.py
# Чат поддержки/продаж: беседы и сообщения.
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session, selectinload

from poufmaker.core.config import settings
from poufmaker.core.errors import InvalidRequest, NotFound, Unauthorized
from poufmaker.core.security import Principal
from poufmaker.db.base import utcnow
from poufmaker.models.conversation import Conversation, Message

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES_LIMIT = 50


def clamp_limit(limit: int | None) -> int:
    """limit приводится к [1, MESSAGES_PAGE_MAX]; None -> значение по умолчанию."""
    if limit is None:
        return DEFAULT_MESSAGES_LIMIT
    return max(1, min(int(limit), settings.MESSAGES_PAGE_MAX))


def _get(db: Session, conversation_id: str) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


def create_conversation(
    db: Session,
    principal: Principal | None,
    initial_message: str | None,
    user_name: str | None = None,
    user_phone: str | None = None,
) -> tuple[Conversation, Message]:
    """Беседа и первое сообщение создаются одной транзакцией."""
    if not initial_message or not initial_message.strip():
        raise InvalidRequest("Initial message is required")

    conversation = Conversation(
        user_id=principal.user_id if principal else None,
        user_name=user_name or None,
        user_phone=user_phone or None,
    )
    db.add(conversation)
    db.flush()
    message = Message(conversation_id=conversation.id, content=initial_message, is_user=True)
    db.add(message)
    db.commit()
    db.refresh(conversation)
    db.refresh(message)
    logger.info(f"Conversation {conversation.id} started (user={conversation.user_id or 'anonymous'})")
    return conversation, message


def list_conversations(db: Session, principal: Principal, user_id: str | None = None) -> list[Conversation]:
    """Админ видит все беседы (фильтр по userId опционален), остальные — только свои."""
    qs = db.query(Conversation).options(selectinload(Conversation.user), selectinload(Conversation.messages))
    if principal.is_admin:
        if user_id:
            qs = qs.filter(Conversation.user_id == user_id)
    else:
        qs = qs.filter(Conversation.user_id == principal.user_id)
    return qs.order_by(Conversation.updated_at.desc()).all()


def get_conversation(db: Session, conversation_id: str) -> Conversation:
    conversation = (
        db.query(Conversation)
        .options(selectinload(Conversation.user), selectinload(Conversation.messages))
        .filter(Conversation.id == conversation_id)
        .first()
    )
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


def append_message(db: Session, conversation_id: str, content: str | None, is_user: bool = True) -> Message:
    """Добавляет сообщение и сдвигает updated_at беседы в той же транзакции."""
    conversation = _get(db, conversation_id)
    if not content or not content.strip():
        raise InvalidRequest("Message content is required")

    message = Message(conversation_id=conversation.id, content=content, is_user=is_user)
    db.add(message)
    conversation.updated_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


def list_messages(
    db: Session,
    conversation_id: str,
    limit: int | None = DEFAULT_MESSAGES_LIMIT,
    before: datetime | None = None,
) -> list[Message]:
    """Сообщения от новых к старым, строго старше before, не больше limit."""
    _get(db, conversation_id)
    if before is not None and before.tzinfo is not None:
        before = before.astimezone(timezone.utc).replace(tzinfo=None)
    qs = db.query(Message).filter(Message.conversation_id == conversation_id)
    if before is not None:
        qs = qs.filter(Message.created_at < before)
    return qs.order_by(Message.created_at.desc()).limit(clamp_limit(limit)).all()


def delete_conversation(db: Session, principal: Principal, conversation_id: str) -> None:
    """
    Удалить беседу может её владелец или админ.
    Анонимную беседу (user_id пуст) — только админ.
    """
    conversation = _get(db, conversation_id)
    if conversation.user_id is None:
        if not principal.is_admin:
            raise Unauthorized("Only administrators can delete anonymous conversations")
    elif conversation.user_id != principal.user_id and not principal.is_admin:
        raise Unauthorized("Not authorized to delete this conversation")

    db.query(Message).filter(Message.conversation_id == conversation_id).delete(synchronize_session=False)
    db.delete(conversation)
    db.commit()
    logger.info(f"Conversation {conversation_id} deleted by {principal.user_id}")
