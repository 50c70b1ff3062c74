from uuid import uuid4

from sqlalchemy import Column, DateTime, String

from app.core.database import Base
from app.core.timeutil import utcnow


def new_id() -> str:
    return str(uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String, nullable=False, default="User")
    email = Column(String, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
