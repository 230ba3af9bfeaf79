"""Message endpoints for the Tickets service."""
import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_current_user, get_messages_service
from ..errors import envelope_from_exception, envelope_from_result
from ..models import User
from ..schemas import CreateMessageDto, GenericResponseDto, MessageDto
from ..services import MessagesService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/getbyticket/{ticket_id}", response_model=list[MessageDto])
async def get_by_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: MessagesService = Depends(get_messages_service),
) -> list[MessageDto]:
    """Return the messages of a ticket in posting order."""

    try:
        return await service.get_by_ticket(ticket_id)
    except Exception:
        logger.exception("Messages/GetByTicket => ")
        return []


@router.post("/create/{ticket_id}", response_model=GenericResponseDto)
async def create(
    ticket_id: int,
    message_dto: CreateMessageDto,
    current_user: User = Depends(get_current_user),
    service: MessagesService = Depends(get_messages_service),
) -> GenericResponseDto:
    """Post a message to the ticket as the authenticated user."""

    try:
        result = await service.create(ticket_id, message_dto, current_user.id)
    except Exception as exc:
        return envelope_from_exception(exc, "Messages/Create")
    return envelope_from_result(result, "Messages/Create", result.id)


@router.delete("/remove/{id}", response_model=GenericResponseDto)
async def remove(
    id: int,
    current_user: User = Depends(get_current_user),
    service: MessagesService = Depends(get_messages_service),
) -> GenericResponseDto:
    """Delete a message."""

    try:
        result = await service.remove(id)
    except Exception as exc:
        return envelope_from_exception(exc, "Messages/Remove")
    return envelope_from_result(result, "Messages/Remove")
