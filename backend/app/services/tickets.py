from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.core.security import CurrentUser
from app.models.media_asset import MediaAsset
from app.models.message import Message, MessageType
from app.models.ticket import Ticket, TicketStatus
from app.services.policies import can_access_ticket
from app.services.storage import (
    AttachmentUpload,
    StorageError,
    SupabaseStorageClient,
    build_storage_path,
    normalize_content_type,
    validate_attachment,
)

logger = logging.getLogger(__name__)


class TicketError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TicketNotFound(TicketError):
    status_code = 404


class TicketForbidden(TicketError):
    status_code = 403


@dataclass
class TicketSummary:
    ticket: Ticket
    message_count: int


def _clean(value: str | None) -> str:
    return str(value or "").strip()


def create_ticket(db: Session, user: CurrentUser, subject: str, content: str) -> Ticket:
    subject = _clean(subject)
    content = _clean(content)
    if not subject:
        raise TicketError("Subject is required")
    if not content:
        raise TicketError("Message is required")

    ticket = Ticket(student_id=user.id, subject=subject, status=TicketStatus.PENDING)
    db.add(ticket)
    db.flush()
    db.add(Message(ticket_id=ticket.id, sender_id=user.id, message_type=MessageType.TEXT, content=content))
    db.commit()
    db.refresh(ticket)
    logger.info("tickets.create ticket_id=%s student_id=%s", ticket.id, user.id)
    return ticket


def list_tickets(
    db: Session,
    user: CurrentUser,
    *,
    status: TicketStatus | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[TicketSummary]:
    limit = max(1, min(int(limit or 100), 500))
    offset = max(0, int(offset or 0))

    counts = (
        db.query(Message.ticket_id.label("ticket_id"), func.count(Message.id).label("message_count"))
        .group_by(Message.ticket_id)
        .subquery()
    )
    query = db.query(Ticket, func.coalesce(counts.c.message_count, 0)).outerjoin(counts, counts.c.ticket_id == Ticket.id)
    if not user.is_staff:
        query = query.filter(Ticket.student_id == user.id)
    if status is not None:
        query = query.filter(Ticket.status == status)
    rows = query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).offset(offset).limit(limit).all()
    return [TicketSummary(ticket=t, message_count=int(n or 0)) for t, n in rows]


def get_ticket_for_user(db: Session, user: CurrentUser, ticket_id: str) -> Ticket:
    ticket = db.query(Ticket).filter(Ticket.id == ticket_id).first()
    # Inaccessible tickets look the same as missing ones.
    if ticket is None or not can_access_ticket(ticket, user.id, user.roles):
        raise TicketNotFound("Ticket not found")
    return ticket


def update_status(db: Session, user: CurrentUser, ticket_id: str, status: TicketStatus) -> Ticket:
    ticket = get_ticket_for_user(db, user, ticket_id)
    if not user.is_staff:
        raise TicketForbidden("Only staff can update ticket status")
    if ticket.status != status:
        previous = ticket.status
        ticket.status = status
        db.commit()
        db.refresh(ticket)
        logger.info("tickets.status ticket_id=%s from=%s to=%s by=%s", ticket.id, previous, status, user.id)
    return ticket


def list_messages(db: Session, ticket: Ticket) -> list[Message]:
    return (
        db.query(Message)
        .options(selectinload(Message.media_assets))
        .filter(Message.ticket_id == ticket.id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def post_message(
    db: Session,
    user: CurrentUser,
    ticket: Ticket,
    *,
    content: str | None,
    message_type: MessageType = MessageType.TEXT,
    transcript: str | None = None,
) -> Message:
    if not can_access_ticket(ticket, user.id, user.roles):
        raise TicketNotFound("Ticket not found")
    content = _clean(content) or None
    transcript = _clean(transcript) or None
    if message_type == MessageType.TEXT and not content:
        raise TicketError("Message content is required")
    if message_type == MessageType.VOICE and not (content or transcript):
        raise TicketError("Voice messages need content or a transcript")

    message = Message(
        ticket_id=ticket.id,
        sender_id=user.id,
        message_type=message_type,
        content=content,
        transcript=transcript,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("tickets.message ticket_id=%s sender_id=%s type=%s", ticket.id, user.id, message_type.value)
    return message


def _discard_uploads(storage: SupabaseStorageClient, paths: list[str]) -> None:
    if not paths:
        return
    try:
        storage.remove(paths)
    except StorageError:
        logger.exception("tickets.attachments.orphaned paths=%s", paths)


def post_message_with_attachments(
    db: Session,
    storage: SupabaseStorageClient,
    user: CurrentUser,
    ticket: Ticket,
    *,
    content: str | None,
    uploads: list[AttachmentUpload],
) -> Message:
    if not can_access_ticket(ticket, user.id, user.roles):
        raise TicketNotFound("Ticket not found")
    content = _clean(content) or None
    if not uploads and not content:
        raise TicketError("Message content or an attachment is required")

    # Validate everything before the first upload so a bad file rejects the batch.
    checked = [(u, validate_attachment(u)) for u in uploads]

    message = Message(ticket_id=ticket.id, sender_id=user.id, message_type=MessageType.TEXT, content=content)
    db.add(message)
    db.flush()
    uploaded: list[str] = []
    try:
        for upload, file_type in checked:
            content_type = normalize_content_type(upload.content_type, upload.filename)
            path = build_storage_path(user.id, ticket.id, upload.filename, content_type)
            storage.upload(path, upload.data, content_type)
            uploaded.append(path)
            db.add(MediaAsset(message_id=message.id, storage_path=path, file_type=file_type))
    except StorageError:
        db.rollback()
        _discard_uploads(storage, uploaded)
        raise
    db.commit()
    db.refresh(message)
    logger.info(
        "tickets.message ticket_id=%s sender_id=%s attachments=%s", ticket.id, user.id, len(checked)
    )
    return message


def get_attachment_for_user(db: Session, user: CurrentUser, asset_id: str) -> MediaAsset:
    asset = db.query(MediaAsset).filter(MediaAsset.id == asset_id).first()
    if asset is None:
        raise TicketNotFound("Attachment not found")
    ticket = asset.message.ticket if asset.message is not None else None
    if ticket is None or not can_access_ticket(ticket, user.id, user.roles):
        raise TicketNotFound("Attachment not found")
    return asset
