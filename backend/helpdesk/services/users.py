"""Users service: account CRUD, language, technicians and password recovery."""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings
from ..enums import LoginOutcome, RoleName, TokenPurpose
from ..mailer import Mailer, OutgoingMail
from ..models import Role, User
from ..repository import UnitOfWork
from ..schemas import (
    ChangeLanguageDto,
    CreateEditRemoveResponseDto,
    CreateUserDto,
    LoginDto,
    LoginResult,
    OperationResult,
    ResetPasswordDto,
    RoleDto,
    UserDto,
)
from ..security import client_password_digest, hash_text
from ..translations import translate
from .identities import IdentitiesService

logger = logging.getLogger(__name__)


def compose_email(username: str, domain: str, tld: str) -> str:
    """Rebuild an address split into three URL-safe parts."""
    return f"{username}@{domain}.{tld}"


def to_user_dto(user: User | None) -> UserDto:
    return UserDto.model_validate(user) if user is not None else UserDto()


class UsersService:
    """Orchestrates user operations over the unit of work."""

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        identities: IdentitiesService,
        mailer: Mailer,
        settings: Settings,
    ) -> None:
        self._unit_of_work = unit_of_work
        self._identities = identities
        self._mailer = mailer
        self._settings = settings

    @staticmethod
    def hash(text: str) -> str:
        """Hex SHA-256 digest of `text`."""
        return hash_text(text)

    # ---------- lookups ----------

    async def get_all(self) -> list[UserDto]:
        """Every user account."""

        try:
            users = await self._unit_of_work.users.get_all()
        except SQLAlchemyError:
            logger.exception("UsersService.get_all => ")
            raise
        return [to_user_dto(user) for user in users]

    async def get_by_user_name(self, username: str) -> UserDto:
        """The user named `username`, or an empty UserDto."""

        try:
            user = await self._unit_of_work.users.get_first(User.username == username)
        except SQLAlchemyError:
            logger.exception("UsersService.get_by_user_name => ")
            raise
        return to_user_dto(user)

    async def get_by_email(self, email: str) -> UserDto:
        """The user registered with `email`, or an empty UserDto."""

        try:
            user = await self._unit_of_work.users.get_first(User.email == email)
        except SQLAlchemyError:
            logger.exception("UsersService.get_by_email => ")
            raise
        return to_user_dto(user)

    async def get_by_id(self, user_id: int) -> UserDto:
        """The user as a DTO; the empty DTO when the id is unknown."""

        try:
            user = await self._unit_of_work.users.get(user_id)
        except SQLAlchemyError:
            logger.exception("UsersService.get_by_id => ")
            raise
        return to_user_dto(user)

    async def get_technicians(self) -> list[UserDto]:
        """Users whose primary role is SupportTechnician."""

        try:
            users = await self._unit_of_work.users.get_all(
                User.role == RoleName.SUPPORT_TECHNICIAN.value
            )
        except SQLAlchemyError:
            logger.exception("UsersService.get_technicians => ")
            raise
        return [to_user_dto(user) for user in users]

    async def get_role_by_user_id(self, user_id: int) -> RoleDto:
        """The first role assigned to the user, or an empty RoleDto."""

        try:
            user = await self._unit_of_work.users.get(user_id)
            if user is None:
                return RoleDto()
            role_names = await self._identities.get_user_roles(user)
            if not role_names:
                return RoleDto()
            role = await self._unit_of_work.roles.get_first(Role.name == role_names[0])
        except SQLAlchemyError:
            logger.exception("UsersService.get_role_by_user_id => ")
            raise
        return RoleDto.model_validate(role) if role is not None else RoleDto()

    # ---------- mutations ----------

    async def validate_user(self, user_dto: CreateUserDto) -> list[str]:
        """One message per unique field (user name, email) that is already taken."""

        errors: list[str] = []
        language = self._settings.default_language
        if await self._unit_of_work.users.any(User.username == user_dto.username):
            errors.append(translate("username_not_available", language, username=user_dto.username))
        if await self._unit_of_work.users.any(User.email == user_dto.email):
            errors.append(translate("email_not_available", language, email=user_dto.email))
        return errors

    async def create(self, user_dto: CreateUserDto, role: RoleName) -> OperationResult:
        """Create a staff account with the default password and `role`."""

        errors = await self.validate_user(user_dto)
        if errors:
            return OperationResult.failed(*errors)

        user = User(
            username=user_dto.username,
            email=user_dto.email,
            phone_number=user_dto.phone_number,
            full_name=user_dto.full_name,
            language=user_dto.language,
            role=role.value,
        )
        password = client_password_digest(self._settings.default_user_password)
        return await self._identities.create_user(user, password, role)

    async def update(self, user_id: int, user_dto: CreateUserDto) -> OperationResult:
        """Overwrite the profile fields of an existing user."""

        user = await self._unit_of_work.users.get(user_id)
        if user is None:
            return OperationResult.failed(
                translate("user_not_found", self._settings.default_language)
            )

        user.full_name = user_dto.full_name
        user.email = user_dto.email
        user.phone_number = user_dto.phone_number
        user.username = user_dto.username
        self._unit_of_work.users.update(user)
        await self._unit_of_work.save_changes()
        return OperationResult.success()

    async def change_language(self, change_language: ChangeLanguageDto, user_id: int) -> bool:
        """Set the user's language. Succeeds without changes for unknown ids."""

        try:
            user = await self._unit_of_work.users.get(user_id)
            if user is not None:
                user.language = change_language.language_id
                self._unit_of_work.users.update(user)
                await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("UsersService.change_language => ")
            raise
        return True

    async def remove(self, user_id: int) -> CreateEditRemoveResponseDto:
        """Delete the user; a missing id is reported in `errors`."""

        response = CreateEditRemoveResponseDto(id=user_id)
        try:
            if await self._unit_of_work.users.remove(user_id):
                await self._unit_of_work.save_changes()
            else:
                response.errors = [
                    translate("id_not_found", self._settings.default_language, id=user_id)
                ]
        except SQLAlchemyError:
            logger.exception("UsersService.remove => ")
            raise
        return response

    # ---------- tokens and authentication ----------

    async def create_purpose_token(self, user_id: int, purpose: TokenPurpose | str) -> str | None:
        """Mint a purpose token for the user, or None when the id is unknown."""

        user = await self._unit_of_work.users.get(user_id)
        if user is None:
            return None
        return await self._identities.get_purpose_token(user, purpose)

    async def create_token_password(self, user_id: int) -> str | None:
        """Password reset token for `user_id`, or None when the user is missing."""
        return await self.create_purpose_token(user_id, TokenPurpose.RESET_PASSWORD)

    async def validate_user_token(self, user_id: int, purpose: TokenPurpose | str, token: str) -> bool:
        """Check a purpose token against the user with this id."""

        user = await self._unit_of_work.users.get(user_id)
        return await self._identities.verify_user_token(user, purpose, token)

    async def login(self, login_dto: LoginDto, remember_user: bool = False) -> LoginResult:
        """Authenticate by email; unexpected failures degrade to FAILED."""

        try:
            user = await self._unit_of_work.users.get_first(User.email == login_dto.email)
            return await self._identities.login(user, login_dto.password, remember_user)
        except SQLAlchemyError:
            logger.exception("UsersService.login => ")
            return LoginResult(outcome=LoginOutcome.FAILED)

    # ---------- password recovery ----------

    async def build_recovery_mail(self, username: str, domain: str, tld: str) -> OutgoingMail | None:
        """Prepare the recovery mail for the account, or None if there is none."""

        email = compose_email(username, domain, tld)
        user = await self._unit_of_work.users.get_first(User.email == email)
        if user is None:
            logger.info("UsersService.build_recovery_mail => no account for the requested address")
            return None

        token = await self._identities.get_token_password(user)
        link = (
            f"{self._settings.recover_link}{self.hash(email)}/{username}/{domain}/{tld}"
            f"?token={token}"
        )
        return OutgoingMail(
            recipient=email,
            subject=translate("email_title", user.language),
            body=f"{translate('email_body', user.language)}\n{link}",
            sender_name=self._settings.mail_sender_name,
            sender_address=self._settings.mail_sender_address,
        )

    async def send_mail(self, username: str, domain: str, tld: str) -> bool:
        """Send the recovery mail. Never raises; returns whether it was delivered."""

        try:
            mail = await self.build_recovery_mail(username, domain, tld)
        except SQLAlchemyError:
            logger.exception("UsersService.send_mail => ")
            return False
        if mail is None:
            return False
        return await self._mailer.deliver(mail)

    async def reset_password(self, reset_password: ResetPasswordDto) -> User | None:
        """Find the account addressed by the reset form, or None."""

        email = compose_email(reset_password.username, reset_password.domain, reset_password.tld)
        try:
            return await self._unit_of_work.users.get_first(User.email == email)
        except SQLAlchemyError:
            logger.exception("UsersService.reset_password => ")
            return None
