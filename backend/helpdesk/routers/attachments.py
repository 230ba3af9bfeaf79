"""Attachment endpoints for the Tickets service."""
import logging
from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response

from ..config import Settings, get_settings
from ..dependencies import get_attachments_service, get_current_user
from ..errors import envelope_from_exception, envelope_from_result
from ..models import User
from ..schemas import AttachmentDto, GenericResponseDto
from ..services import AttachmentsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attachments", tags=["attachments"])

UPLOAD_CHUNK_BYTES = 64 * 1024


def content_disposition(file_name: str) -> str:
    """Header value with an ASCII fallback name and the RFC 5987 UTF-8 name."""

    fallback = "".join(
        char for char in file_name if 32 <= ord(char) < 127 and char not in '"\\'
    ).strip() or "attachment"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


async def read_upload(file: UploadFile, limit: int) -> bytes:
    """Read at most `limit` + 1 bytes, enough to tell an oversized file apart."""

    chunks: list[bytes] = []
    remaining = limit + 1
    while remaining > 0:
        chunk = await file.read(min(UPLOAD_CHUNK_BYTES, remaining))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


@router.get("/getbyticket/{ticket_id}", response_model=list[AttachmentDto])
async def get_by_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: AttachmentsService = Depends(get_attachments_service),
) -> list[AttachmentDto]:
    """List the attachment metadata of a ticket; empty if the lookup fails."""

    try:
        return await service.get_by_ticket(ticket_id)
    except Exception:
        logger.exception("Attachments/GetByTicket => ")
        return []


@router.get("/download/{id}")
async def download(
    id: int,
    current_user: User = Depends(get_current_user),
    service: AttachmentsService = Depends(get_attachments_service),
) -> Response:
    """Return the stored file as a download."""

    attachment = await service.get(id)
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    return Response(
        content=attachment.data,
        media_type=attachment.content_type,
        headers={"Content-Disposition": content_disposition(attachment.file_name)},
    )


@router.post("/upload/{ticket_id}", response_model=GenericResponseDto)
async def upload(
    ticket_id: int,
    file: UploadFile = File(...),
    message_id: int | None = Form(None),
    current_user: User = Depends(get_current_user),
    service: AttachmentsService = Depends(get_attachments_service),
    settings: Settings = Depends(get_settings),
) -> Any:
    """Attach an uploaded file to the ticket (and optionally one of its messages)."""

    try:
        data = await read_upload(file, settings.max_attachment_bytes)
        result = await service.create(
            ticket_id, file.filename or "attachment", file.content_type, data, message_id
        )
    except Exception as exc:
        return envelope_from_exception(exc, "Attachments/Upload")
    return envelope_from_result(result, "Attachments/Upload", result.id)


@router.delete("/remove/{id}", response_model=GenericResponseDto)
async def remove(
    id: int,
    current_user: User = Depends(get_current_user),
    service: AttachmentsService = Depends(get_attachments_service),
) -> GenericResponseDto:
    """Delete an attachment."""

    try:
        result = await service.remove(id)
    except Exception as exc:
        return envelope_from_exception(exc, "Attachments/Remove")
    return envelope_from_result(result, "Attachments/Remove")
