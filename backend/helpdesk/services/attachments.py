"""Attachments service: files uploaded to tickets."""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..models import Attachment
from ..repository import UnitOfWork
from ..schemas import AttachmentDto, CreateEditRemoveResponseDto
from ..translations import translate

logger = logging.getLogger(__name__)


class AttachmentsService:
    """Files stored against tickets."""

    def __init__(self, unit_of_work: UnitOfWork, settings: Settings) -> None:
        self._unit_of_work = unit_of_work
        self._settings = settings

    def _failure(self, entity_id: int, key: str, **values: object) -> CreateEditRemoveResponseDto:
        return CreateEditRemoveResponseDto(
            id=entity_id,
            errors=[translate(key, self._settings.default_language, **values)],
        )

    async def get_by_ticket(self, ticket_id: int) -> list[AttachmentDto]:
        """Attachment metadata of a ticket."""

        attachments = await self._unit_of_work.attachments.get_all(Attachment.ticket_id == ticket_id)
        return [AttachmentDto.model_validate(attachment) for attachment in attachments]

    async def get(self, attachment_id: int) -> Attachment | None:
        """The attachment with its content, or None."""

        return await self._unit_of_work.attachments.get(attachment_id)

    async def create(
        self,
        ticket_id: int,
        file_name: str,
        content_type: str | None,
        data: bytes,
        message_id: int | None = None,
    ) -> CreateEditRemoveResponseDto:
        """Store a file on a ticket, optionally linked to one of its messages."""

        limit = self._settings.max_attachment_bytes
        if len(data) > limit:
            return self._failure(ticket_id, "attachment_too_large", limit=limit)
        if await self._unit_of_work.tickets.get(ticket_id) is None:
            return self._failure(ticket_id, "id_not_found", id=ticket_id)
        if message_id is not None:
            message = await self._unit_of_work.messages.get(message_id)
            if message is None or message.ticket_id != ticket_id:
                return self._failure(
                    ticket_id, "message_not_in_ticket", message_id=message_id, ticket_id=ticket_id
                )

        attachment = Attachment(
            ticket_id=ticket_id,
            message_id=message_id,
            file_name=file_name,
            content_type=content_type or "application/octet-stream",
            size=len(data),
            data=data,
        )
        try:
            self._unit_of_work.attachments.add(attachment)
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("AttachmentsService.create => ")
            raise
        return CreateEditRemoveResponseDto(id=attachment.id)

    async def remove(self, attachment_id: int) -> CreateEditRemoveResponseDto:
        """Delete one attachment."""

        try:
            if not await self._unit_of_work.attachments.remove(attachment_id):
                return self._failure(attachment_id, "id_not_found", id=attachment_id)
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("AttachmentsService.remove => ")
            raise
        return CreateEditRemoveResponseDto(id=attachment_id)
