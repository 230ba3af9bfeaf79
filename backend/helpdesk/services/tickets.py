"""Tickets service: incident CRUD, assignment and status changes."""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..enums import OrderType, Priority, RoleName, TicketStatus
from ..mailer import OutgoingMail
from ..models import Ticket, User
from ..repository import UnitOfWork
from ..schemas import CreateEditRemoveResponseDto, CreateTicketDto, TicketDto
from ..translations import translate

logger = logging.getLogger(__name__)


class TicketsService:
    """Ticket lifecycle: creation, assignment, status changes and removal."""

    def __init__(self, unit_of_work: UnitOfWork, settings: Settings) -> None:
        self._unit_of_work = unit_of_work
        self._settings = settings

    def _not_found(self, entity_id: int) -> CreateEditRemoveResponseDto:
        return CreateEditRemoveResponseDto(
            id=entity_id,
            errors=[translate("id_not_found", self._settings.default_language, id=entity_id)],
        )

    async def get_all(
        self,
        status: TicketStatus = TicketStatus.ALL,
        priority: Priority = Priority.ALL,
        order: OrderType = OrderType.DOWN,
    ) -> list[TicketDto]:
        """List tickets, optionally filtered by status/priority, by creation date."""

        criteria = []
        if status is not TicketStatus.ALL:
            criteria.append(Ticket.status == status)
        if priority is not Priority.ALL:
            criteria.append(Ticket.priority == priority)
        if order is OrderType.UP:
            order_by = [Ticket.created_at.asc(), Ticket.id.asc()]
        else:
            order_by = [Ticket.created_at.desc(), Ticket.id.desc()]

        try:
            tickets = await self._unit_of_work.tickets.get_all(*criteria, order_by=order_by)
        except SQLAlchemyError:
            logger.exception("TicketsService.get_all => ")
            raise
        return [TicketDto.model_validate(ticket) for ticket in tickets]

    async def get_by_id(self, ticket_id: int) -> TicketDto:
        """The ticket, or an empty TicketDto when it does not exist."""

        ticket = await self._unit_of_work.tickets.get(ticket_id)
        return TicketDto.model_validate(ticket) if ticket is not None else TicketDto()

    async def get_by_user(self, user_id: int) -> list[TicketDto]:
        """Tickets opened by `user_id`."""

        tickets = await self._unit_of_work.tickets.get_all(Ticket.user_id == user_id)
        return [TicketDto.model_validate(ticket) for ticket in tickets]

    async def get_by_technician(self, technician_id: int) -> list[TicketDto]:
        """Tickets assigned to `technician_id`."""

        tickets = await self._unit_of_work.tickets.get_all(Ticket.technician_id == technician_id)
        return [TicketDto.model_validate(ticket) for ticket in tickets]

    async def create(self, ticket_dto: CreateTicketDto, user_id: int) -> CreateEditRemoveResponseDto:
        """Open a PENDING ticket owned by `user_id`."""

        ticket = Ticket(
            title=ticket_dto.title,
            description=ticket_dto.description,
            priority=ticket_dto.priority,
            status=TicketStatus.PENDING,
            user_id=user_id,
        )
        try:
            self._unit_of_work.tickets.add(ticket)
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("TicketsService.create => ")
            raise
        return CreateEditRemoveResponseDto(id=ticket.id)

    async def update(self, ticket_id: int, ticket_dto: CreateTicketDto) -> CreateEditRemoveResponseDto:
        """Overwrite title, description and priority."""

        ticket = await self._unit_of_work.tickets.get(ticket_id)
        if ticket is None:
            return self._not_found(ticket_id)

        ticket.title = ticket_dto.title
        ticket.description = ticket_dto.description
        ticket.priority = ticket_dto.priority
        self._unit_of_work.tickets.update(ticket)
        await self._unit_of_work.save_changes()
        return CreateEditRemoveResponseDto(id=ticket_id)

    async def assign_technician(self, ticket_id: int, technician_id: int) -> CreateEditRemoveResponseDto:
        """Hand the ticket to a support technician and open it if still pending."""

        ticket = await self._unit_of_work.tickets.get(ticket_id)
        if ticket is None:
            return self._not_found(ticket_id)

        technician = await self._unit_of_work.users.get(technician_id)
        if technician is None or technician.role != RoleName.SUPPORT_TECHNICIAN.value:
            return CreateEditRemoveResponseDto(
                id=ticket_id,
                errors=[
                    translate("technician_not_found", self._settings.default_language, id=technician_id)
                ],
            )

        ticket.technician_id = technician.id
        if ticket.status == TicketStatus.PENDING:
            ticket.status = TicketStatus.OPENED
        self._unit_of_work.tickets.update(ticket)
        await self._unit_of_work.save_changes()
        return CreateEditRemoveResponseDto(id=ticket_id)

    async def change_status(self, ticket_id: int, status: TicketStatus) -> CreateEditRemoveResponseDto:
        """Move the ticket to `status`."""

        ticket = await self._unit_of_work.tickets.get(ticket_id)
        if ticket is None:
            return self._not_found(ticket_id)

        ticket.status = status
        self._unit_of_work.tickets.update(ticket)
        await self._unit_of_work.save_changes()
        return CreateEditRemoveResponseDto(id=ticket_id)

    async def build_review_mail(self, ticket_id: int) -> OutgoingMail | None:
        """Mail inviting the ticket owner to review the support received."""

        ticket = await self._unit_of_work.tickets.get(ticket_id)
        if ticket is None:
            return None
        owner: User | None = await self._unit_of_work.users.get(ticket.user_id)
        if owner is None or not owner.email:
            return None

        link = f"{self._settings.review_link}{ticket.id}"
        return OutgoingMail(
            recipient=owner.email,
            subject=translate("review_title", owner.language, id=ticket.id),
            body=f"{translate('review_body', owner.language)}\n{link}",
            sender_name=self._settings.support_sender_name,
            sender_address=self._settings.support_sender_address,
        )

    async def remove(self, ticket_id: int) -> CreateEditRemoveResponseDto:
        """Delete the ticket together with its messages and attachments."""

        try:
            if not await self._unit_of_work.tickets.remove(ticket_id):
                return self._not_found(ticket_id)
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("TicketsService.remove => ")
            raise
        return CreateEditRemoveResponseDto(id=ticket_id)
