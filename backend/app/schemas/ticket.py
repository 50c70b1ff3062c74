from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.models.media_asset import FileType
from app.models.message import MessageType
from app.models.ticket import TicketStatus


class ProfileSummary(BaseModel):
    id: str
    name: str
    email: str

    class Config:
        from_attributes = True


class TicketCreate(BaseModel):
    subject: str
    message: str


class TicketStatusUpdate(BaseModel):
    status: TicketStatus


class TicketResponse(BaseModel):
    id: str
    student_id: str
    subject: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    student: Optional[ProfileSummary] = None
    message_count: Optional[int] = None

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    content: Optional[str] = None
    message_type: MessageType = MessageType.TEXT
    transcript: Optional[str] = None


class MediaAssetResponse(BaseModel):
    id: str
    message_id: str
    storage_path: str
    file_type: FileType
    file_name: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    id: str
    ticket_id: str
    sender_id: str
    message_type: MessageType
    content: Optional[str] = None
    transcript: Optional[str] = None
    created_at: datetime
    sender: Optional[ProfileSummary] = None
    media_assets: List[MediaAssetResponse] = []

    class Config:
        from_attributes = True


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int
    file_name: str
    file_type: FileType
