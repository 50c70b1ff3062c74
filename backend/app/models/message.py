import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.timeutil import utcnow
from app.models.profile import new_id


class MessageType(str, enum.Enum):
    TEXT = "text"
    VOICE = "voice"


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    ticket_id = Column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), index=True, nullable=False)
    sender_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    message_type = Column(
        Enum(MessageType, name="message_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MessageType.TEXT,
    )
    content = Column(Text, nullable=True)
    transcript = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow)

    ticket = relationship("Ticket", back_populates="messages")
    sender = relationship("Profile", lazy="joined")
    media_assets = relationship(
        "MediaAsset",
        back_populates="message",
        order_by="MediaAsset.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
