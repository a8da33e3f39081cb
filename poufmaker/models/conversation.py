# poufmaker/models/conversation.py
# Модели Conversation и Message для чата поддержки/продаж.
# Пользователь не обязателен: анонимный собеседник хранит имя и телефон прямо в беседе.
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from poufmaker.db.base import Base, new_id, utcnow


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String, nullable=True)
    user_phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, index=True)

    user = relationship("User")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at.desc()",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    # True — написал участник, False — ответ с нашей стороны
    is_user = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    conversation = relationship("Conversation", back_populates="messages")
