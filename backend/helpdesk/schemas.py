"""Pydantic schemas used across the helpdesk API."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from .enums import Language, LoginOutcome, Priority, ResponseCode, TicketStatus


class SessionToken(BaseModel):
    """JWT response payload."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TokenData(BaseModel):
    """Information encoded into JWTs."""

    user_id: int
    email: str
    role: str
    stamp: str


class LoginDto(BaseModel):
    """Credentials supplied during login."""

    email: str
    password: str


class LoginResult(BaseModel):
    """Tagged outcome of a login attempt."""

    outcome: LoginOutcome
    user_id: int | None = None
    token: SessionToken | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is LoginOutcome.SUCCESS


class UserDto(BaseModel):
    """Public representation of a user.

    A default-constructed instance (id 0) stands for "not found".
    """

    id: int = 0
    username: str = ""
    email: str = ""
    phone_number: str = ""
    full_name: str = ""
    language: Language | None = None
    role: str = ""

    model_config = {"from_attributes": True}


class CreateUserDto(BaseModel):
    """Payload for user creation and update."""

    username: str = Field(min_length=1)
    email: EmailStr
    phone_number: str = ""
    full_name: str = ""
    language: Language = Language.ENGLISH


class ChangeLanguageDto(BaseModel):
    language_id: Language


class ResetPasswordDto(BaseModel):
    """Form fields posted from the recovery page."""

    username: str
    domain: str
    tld: str
    password: str
    token: str = ""


class RoleDto(BaseModel):
    id: int = 0
    name: str = ""

    model_config = {"from_attributes": True}


class OperationResult(BaseModel):
    """Success flag plus the error descriptions of a failed operation."""

    succeeded: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: str) -> "OperationResult":
        return cls(succeeded=False, errors=list(errors))


class CreateEditRemoveResponseDto(BaseModel):
    id: int = 0
    errors: list[str] = Field(default_factory=list)


class GenericErrorDto(BaseModel):
    """Error block of the response envelope."""

    id: ResponseCode = Field(alias="Id")
    description: str = Field(default="", alias="Description")
    location: str = Field(default="", alias="Location")

    model_config = {"populate_by_name": True}


class GenericResponseDto(BaseModel):
    """The `{ReturnData, Error}` envelope returned by mutation endpoints."""

    return_data: Any = Field(default=None, alias="ReturnData")
    error: GenericErrorDto | None = Field(default=None, alias="Error")

    model_config = {"populate_by_name": True}

    @classmethod
    def failure(cls, code: ResponseCode, description: str, location: str) -> "GenericResponseDto":
        return cls(error=GenericErrorDto(id=code, description=description, location=location))


class TicketDto(BaseModel):
    id: int = 0
    title: str = ""
    description: str = ""
    priority: Priority = Priority.NOT_SURE
    status: TicketStatus = TicketStatus.PENDING
    user_id: int = 0
    technician_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CreateTicketDto(BaseModel):
    """Payload for ticket creation and update."""

    title: str = Field(min_length=1)
    description: str = ""
    priority: Priority = Priority.NOT_SURE

    @field_validator("priority")
    @classmethod
    def _concrete_priority(cls, value: Priority) -> Priority:
        if value is Priority.ALL:
            raise ValueError("ALL is a filter value, not a ticket priority")
        return value


class AssignTechnicianDto(BaseModel):
    technician_id: int


class ChangeStatusDto(BaseModel):
    status: TicketStatus

    @field_validator("status")
    @classmethod
    def _concrete_status(cls, value: TicketStatus) -> TicketStatus:
        if value is TicketStatus.ALL:
            raise ValueError("ALL is a filter value, not a ticket status")
        return value


class MessageDto(BaseModel):
    id: int
    ticket_id: int
    user_id: int
    content: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class CreateMessageDto(BaseModel):
    content: str = Field(min_length=1)


class AttachmentDto(BaseModel):
    """Attachment metadata; the content is served by the download endpoint."""

    id: int
    ticket_id: int
    message_id: int | None = None
    file_name: str
    content_type: str
    size: int
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
