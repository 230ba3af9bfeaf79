"""Messages service: the conversation thread of a ticket."""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..models import Message
from ..repository import UnitOfWork
from ..schemas import CreateEditRemoveResponseDto, CreateMessageDto, MessageDto
from ..translations import translate

logger = logging.getLogger(__name__)


class MessagesService:
    """Conversation thread of a ticket."""

    def __init__(self, unit_of_work: UnitOfWork, settings: Settings) -> None:
        self._unit_of_work = unit_of_work
        self._settings = settings

    def _not_found(self, entity_id: int) -> CreateEditRemoveResponseDto:
        return CreateEditRemoveResponseDto(
            id=entity_id,
            errors=[translate("id_not_found", self._settings.default_language, id=entity_id)],
        )

    async def get_by_ticket(self, ticket_id: int) -> list[MessageDto]:
        """Messages of a ticket in the order they were written."""

        messages = await self._unit_of_work.messages.get_all(Message.ticket_id == ticket_id)
        return [MessageDto.model_validate(message) for message in messages]

    async def create(
        self, ticket_id: int, message_dto: CreateMessageDto, user_id: int
    ) -> CreateEditRemoveResponseDto:
        """Add a message to an existing ticket."""

        if await self._unit_of_work.tickets.get(ticket_id) is None:
            return self._not_found(ticket_id)

        message = Message(ticket_id=ticket_id, user_id=user_id, content=message_dto.content)
        try:
            self._unit_of_work.messages.add(message)
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("MessagesService.create => ")
            raise
        return CreateEditRemoveResponseDto(id=message.id)

    async def remove(self, message_id: int) -> CreateEditRemoveResponseDto:
        """Delete one message."""

        try:
            if not await self._unit_of_work.messages.remove(message_id):
                return self._not_found(message_id)
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("MessagesService.remove => ")
            raise
        return CreateEditRemoveResponseDto(id=message_id)
