from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import CurrentUser, get_current_user, require_staff
from app.core.settings import settings
from app.models.ticket import Ticket, TicketStatus
from app.schemas.ticket import (
    MessageCreate,
    MessageResponse,
    SignedUrlResponse,
    TicketCreate,
    TicketResponse,
    TicketStatusUpdate,
)
from app.services import tickets as ticket_service
from app.services.storage import AttachmentRejected, AttachmentUpload, StorageError, SupabaseStorageClient, get_storage


router = APIRouter(dependencies=[Depends(get_current_user)])


def _http_error(exc: ticket_service.TicketError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def _ticket_response(ticket: Ticket, message_count: int | None = None) -> TicketResponse:
    out = TicketResponse.model_validate(ticket)
    out.message_count = message_count
    return out


def _load_ticket(db: Session, user: CurrentUser, ticket_id: str) -> Ticket:
    try:
        return ticket_service.get_ticket_for_user(db, user, ticket_id)
    except ticket_service.TicketError as exc:
        raise _http_error(exc)


@router.post("/tickets", response_model=TicketResponse, status_code=201)
async def create_ticket(
    body: TicketCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TicketResponse:
    try:
        ticket = ticket_service.create_ticket(db, current_user, body.subject, body.message)
    except ticket_service.TicketError as exc:
        raise _http_error(exc)
    return _ticket_response(ticket, message_count=1)


@router.get("/tickets", response_model=List[TicketResponse])
async def list_tickets(
    status: TicketStatus | None = None,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[TicketResponse]:
    rows = ticket_service.list_tickets(db, current_user, status=status, limit=limit, offset=offset)
    return [_ticket_response(r.ticket, r.message_count) for r in rows]


@router.get("/tickets/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TicketResponse:
    return _ticket_response(_load_ticket(db, current_user, ticket_id))


@router.patch("/tickets/{ticket_id}/status", response_model=TicketResponse)
async def update_ticket_status(
    ticket_id: str,
    body: TicketStatusUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff),
) -> TicketResponse:
    try:
        ticket = ticket_service.update_status(db, current_user, ticket_id, body.status)
    except ticket_service.TicketError as exc:
        raise _http_error(exc)
    return _ticket_response(ticket)


@router.get("/tickets/{ticket_id}/messages", response_model=List[MessageResponse])
async def list_ticket_messages(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    ticket = _load_ticket(db, current_user, ticket_id)
    return ticket_service.list_messages(db, ticket)


@router.post("/tickets/{ticket_id}/messages", response_model=MessageResponse, status_code=201)
async def post_ticket_message(
    ticket_id: str,
    body: MessageCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    ticket = _load_ticket(db, current_user, ticket_id)
    try:
        return ticket_service.post_message(
            db,
            current_user,
            ticket,
            content=body.content,
            message_type=body.message_type,
            transcript=body.transcript,
        )
    except ticket_service.TicketError as exc:
        raise _http_error(exc)


@router.post("/tickets/{ticket_id}/attachments", response_model=MessageResponse, status_code=201)
async def post_ticket_attachments(
    ticket_id: str,
    content: str | None = Form(default=None),
    files: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    storage: SupabaseStorageClient = Depends(get_storage),
):
    ticket = _load_ticket(db, current_user, ticket_id)
    uploads: list[AttachmentUpload] = []
    for f in files:
        data = await f.read()
        uploads.append(AttachmentUpload(filename=f.filename or "", content_type=f.content_type or "", data=data))
    try:
        return ticket_service.post_message_with_attachments(
            db, storage, current_user, ticket, content=content, uploads=uploads
        )
    except AttachmentRejected as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    except ticket_service.TicketError as exc:
        raise _http_error(exc)


@router.get("/attachments/{asset_id}/url", response_model=SignedUrlResponse)
async def get_attachment_url(
    asset_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    storage: SupabaseStorageClient = Depends(get_storage),
) -> SignedUrlResponse:
    try:
        asset = ticket_service.get_attachment_for_user(db, current_user, asset_id)
    except ticket_service.TicketError as exc:
        raise _http_error(exc)
    ttl = settings.storage_signed_url_ttl_s
    try:
        url = storage.create_signed_url(asset.storage_path, ttl)
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    return SignedUrlResponse(url=url, expires_in=ttl, file_name=asset.file_name, file_type=asset.file_type)
