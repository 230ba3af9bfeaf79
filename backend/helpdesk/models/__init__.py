"""SQLAlchemy models exposed by the helpdesk services."""
from .base import Base
from .ticket import Attachment, Message, Ticket
from .token import PurposeToken
from .user import Role, User, UserRole

__all__ = ["Attachment", "Base", "Message", "PurposeToken", "Role", "Ticket", "User", "UserRole"]
