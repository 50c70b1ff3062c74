import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.timeutil import utcnow
from app.models.profile import new_id


class TicketStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    subject = Column(String, nullable=False)
    status = Column(
        Enum(TicketStatus, name="ticket_status", values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
        default=TicketStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    student = relationship("Profile", lazy="joined")
    messages = relationship(
        "Message",
        back_populates="ticket",
        order_by="Message.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
