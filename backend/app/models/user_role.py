import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, UniqueConstraint

from app.core.database import Base
from app.core.timeutil import utcnow
from app.models.profile import new_id


class AppRole(str, enum.Enum):
    STUDENT = "student"
    STAFF = "staff"
    ADMIN = "admin"


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_id_role"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False)
    role = Column(Enum(AppRole, name="app_role", values_callable=lambda e: [m.value for m in e]), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
