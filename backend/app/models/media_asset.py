import enum
import posixpath

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.timeutil import utcnow
from app.models.profile import new_id


class FileType(str, enum.Enum):
    IMAGE = "image"
    PDF = "pdf"


class MediaAsset(Base):
    __tablename__ = "media_assets"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), index=True, nullable=False)
    storage_path = Column(String, unique=True, nullable=False)
    file_type = Column(
        Enum(FileType, name="file_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    message = relationship("Message", back_populates="media_assets")

    @property
    def file_name(self) -> str:
        return posixpath.basename(self.storage_path or "") or "download"
