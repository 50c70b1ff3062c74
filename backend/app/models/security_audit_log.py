from sqlalchemy import JSON, Column, DateTime, String

from app.core.database import Base
from app.core.timeutil import utcnow
from app.models.profile import new_id


class SecurityAuditLog(Base):
    __tablename__ = "security_audit_log"

    id = Column(String(36), primary_key=True, default=new_id)
    # No FK: escalation attempts may come from accounts without a profile row.
    user_id = Column(String(36), index=True, nullable=True)
    action = Column(String, index=True, nullable=False)
    details = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow)
