"""Generic repository and unit of work over an async SQLAlchemy session."""
from __future__ import annotations

import logging
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Attachment, Base, Message, PurposeToken, Role, Ticket, User, UserRole

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """Per-entity data access. Mutations are staged on the shared session."""

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self._session = session
        self._model = model

    def _primary_key(self) -> Sequence[Any]:
        return self._model.__mapper__.primary_key

    async def get(self, entity_id: Any) -> ModelT | None:
        """Point lookup by primary key; ``None`` on a miss."""

        return await self._session.get(self._model, entity_id)

    async def get_all(
        self,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] | None = None,
    ) -> list[ModelT]:
        statement = select(self._model).where(*criteria)
        statement = statement.order_by(*(order_by or self._primary_key()))
        result = await self._session.execute(statement)
        return list(result.scalars().all())

    async def get_first(self, *criteria: ColumnElement[bool]) -> ModelT | None:
        statement = (
            select(self._model)
            .where(*criteria)
            .order_by(*self._primary_key())
            .limit(1)
        )
        result = await self._session.execute(statement)
        return result.scalars().first()

    async def any(self, *criteria: ColumnElement[bool]) -> bool:
        statement = select(self._model).where(*criteria)
        return bool(await self._session.scalar(select(statement.exists())))

    def add(self, entity: ModelT) -> ModelT:
        self._session.add(entity)
        return entity

    def update(self, entity: ModelT) -> ModelT:
        """Stage a mutation of `entity`; it becomes durable on save_changes()."""

        self._session.add(entity)
        return entity

    async def remove(self, entity_id: Any) -> bool:
        """Stage the deletion of one entity. Returns False when it does not exist."""

        entity = await self.get(entity_id)
        if entity is None:
            return False
        await self._session.delete(entity)
        return True

    async def remove_where(self, *criteria: ColumnElement[bool]) -> int:
        """Stage the deletion of every matching row and return how many matched."""

        result = await self._session.execute(
            delete(self._model).where(*criteria).execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0


class UnitOfWork:
    """Groups every repository over one session behind a single commit."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users: Repository[User] = Repository(session, User)
        self.roles: Repository[Role] = Repository(session, Role)
        self.user_roles: Repository[UserRole] = Repository(session, UserRole)
        self.tokens: Repository[PurposeToken] = Repository(session, PurposeToken)
        self.tickets: Repository[Ticket] = Repository(session, Ticket)
        self.messages: Repository[Message] = Repository(session, Message)
        self.attachments: Repository[Attachment] = Repository(session, Attachment)

    async def save_changes(self) -> None:
        """Commit everything staged so far, or roll all of it back."""

        try:
            await self.session.commit()
        except SQLAlchemyError:
            logger.exception("UnitOfWork.save_changes => rolling back")
            await self.session.rollback()
            raise
