"""Ticket endpoints for the Tickets service."""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from ..dependencies import get_current_user, get_mailer, get_tickets_service, require_role
from ..enums import OrderType, Priority, RoleName, TicketStatus
from ..errors import envelope_from_exception, envelope_from_result
from ..mailer import Mailer
from ..models import User
from ..schemas import (
    AssignTechnicianDto,
    ChangeStatusDto,
    CreateTicketDto,
    GenericResponseDto,
    TicketDto,
)
from ..services import TicketsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["tickets"])

MANAGERS = (RoleName.SUPER_ADMIN, RoleName.ADMIN, RoleName.SUPPORT_MANAGER)


@router.get("/getall", response_model=list[TicketDto])
async def get_all(
    status: TicketStatus = TicketStatus.ALL,
    priority: Priority = Priority.ALL,
    order: OrderType = OrderType.DOWN,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> list[TicketDto]:
    """Return tickets filtered by status and priority, newest first by default."""

    try:
        return await service.get_all(status, priority, order)
    except Exception:
        logger.exception("Tickets/GetAll => ")
        return []


@router.get("/getbyid/{id}", response_model=TicketDto)
async def get_by_id(
    id: int,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> TicketDto:
    """Return the ticket, or an empty object when it does not exist."""

    try:
        return await service.get_by_id(id)
    except Exception:
        logger.exception("Tickets/GetById => ")
        return TicketDto()


@router.get("/getbyuser/{user_id}", response_model=list[TicketDto])
async def get_by_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> list[TicketDto]:
    """Return the tickets opened by a user."""

    try:
        return await service.get_by_user(user_id)
    except Exception:
        logger.exception("Tickets/GetByUser => ")
        return []


@router.get("/getbytechnician/{technician_id}", response_model=list[TicketDto])
async def get_by_technician(
    technician_id: int,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> list[TicketDto]:
    """Return the tickets assigned to a technician."""

    try:
        return await service.get_by_technician(technician_id)
    except Exception:
        logger.exception("Tickets/GetByTechnician => ")
        return []


@router.post("/create", response_model=GenericResponseDto)
async def create(
    ticket_dto: CreateTicketDto,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> GenericResponseDto:
    """Open a ticket on behalf of the authenticated user."""

    try:
        result = await service.create(ticket_dto, current_user.id)
    except Exception as exc:
        return envelope_from_exception(exc, "Tickets/Create")
    return envelope_from_result(result, "Tickets/Create", result.id)


@router.post("/update/{id}", response_model=GenericResponseDto)
async def update(
    id: int,
    ticket_dto: CreateTicketDto,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> GenericResponseDto:
    """Edit the title, description and priority of a ticket."""

    try:
        result = await service.update(id, ticket_dto)
    except Exception as exc:
        return envelope_from_exception(exc, "Tickets/Update")
    return envelope_from_result(result, "Tickets/Update", True)


@router.put("/assign/{id}", response_model=GenericResponseDto)
async def assign(
    id: int,
    assign_dto: AssignTechnicianDto,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> GenericResponseDto:
    """Assign a support technician (managers only)."""

    require_role(current_user, *MANAGERS)
    try:
        result = await service.assign_technician(id, assign_dto.technician_id)
    except Exception as exc:
        return envelope_from_exception(exc, "Tickets/Assign")
    return envelope_from_result(result, "Tickets/Assign", True)


@router.put("/changestatus/{id}", response_model=GenericResponseDto)
async def change_status(
    id: int,
    status_dto: ChangeStatusDto,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
    mailer: Mailer = Depends(get_mailer),
) -> GenericResponseDto:
    """Move the ticket to a new status; finishing it mails a review link to its owner."""

    try:
        result = await service.change_status(id, status_dto.status)
        if not result.errors and status_dto.status is TicketStatus.FINISHED:
            mail = await service.build_review_mail(id)
            if mail is not None:
                background_tasks.add_task(mailer.deliver, mail)
    except Exception as exc:
        return envelope_from_exception(exc, "Tickets/ChangeStatus")
    return envelope_from_result(result, "Tickets/ChangeStatus", True)


@router.delete("/remove/{id}", response_model=GenericResponseDto)
async def remove(
    id: int,
    current_user: User = Depends(get_current_user),
    service: TicketsService = Depends(get_tickets_service),
) -> GenericResponseDto:
    """Delete a ticket and its thread (managers only)."""

    require_role(current_user, *MANAGERS)
    try:
        result = await service.remove(id)
    except Exception as exc:
        return envelope_from_exception(exc, "Tickets/Remove")
    return envelope_from_result(result, "Tickets/Remove")
