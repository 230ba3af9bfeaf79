"""Service layer: one class per aggregate, built per request."""
from .attachments import AttachmentsService
from .identities import IdentitiesService
from .messages import MessagesService
from .tickets import TicketsService
from .users import UsersService

__all__ = [
    "AttachmentsService",
    "IdentitiesService",
    "MessagesService",
    "TicketsService",
    "UsersService",
]
