"""Identity service: purpose tokens, login, password rotation and roles."""
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..config import Settings
from ..enums import LoginOutcome, RoleName, TokenPurpose
from ..models import PurposeToken, Role, User, UserRole
from ..models.user import new_security_stamp
from ..repository import UnitOfWork
from ..schemas import LoginResult, OperationResult, SessionToken
from ..security import compute_expiry, create_session_token, hash_password, hash_text, verify_password

logger = logging.getLogger(__name__)


def _purpose_value(purpose: TokenPurpose | str) -> str:
    return purpose.value if isinstance(purpose, TokenPurpose) else str(purpose)


def _role_value(role_name: RoleName | str) -> str:
    return role_name.value if isinstance(role_name, RoleName) else str(role_name)


class IdentitiesService:
    """Account security operations on top of the unit of work."""

    def __init__(self, unit_of_work: UnitOfWork, settings: Settings) -> None:
        self._unit_of_work = unit_of_work
        self._settings = settings

    # ---------- users and roles ----------

    async def _find_role(self, role_name: RoleName | str) -> Role | None:
        return await self._unit_of_work.roles.get_first(Role.name == _role_value(role_name))

    async def create_user(
        self, user: User, password: str, *role_names: RoleName | str
    ) -> OperationResult:
        """Hash `password` and persist `user` with its roles in a single commit.

        Nothing is saved when a role is unknown or a unique field is taken.
        """

        roles: list[Role] = []
        for role_name in role_names:
            role = await self._find_role(role_name)
            if role is None:
                return OperationResult.failed(f"Role '{_role_value(role_name)}' does not exist")
            roles.append(role)

        user.password_hash = hash_password(password)
        user.security_stamp = new_security_stamp()
        if roles and not user.role:
            user.role = roles[0].name
        for role in roles:
            user.role_links.append(UserRole(role_id=role.id))
        self._unit_of_work.users.add(user)
        try:
            await self._unit_of_work.save_changes()
        except IntegrityError as exc:
            return OperationResult.failed(str(exc.orig))
        return OperationResult.success()

    async def add_to_role(self, user: User, role_name: RoleName | str) -> OperationResult:
        """Assign one more seeded role to an existing user."""

        name = _role_value(role_name)
        role = await self._find_role(name)
        if role is None:
            return OperationResult.failed(f"Role '{name}' does not exist")

        if not await self._unit_of_work.user_roles.any(
            UserRole.user_id == user.id, UserRole.role_id == role.id
        ):
            self._unit_of_work.user_roles.add(UserRole(user_id=user.id, role_id=role.id))
        if not user.role:
            user.role = name
            self._unit_of_work.users.update(user)
        await self._unit_of_work.save_changes()
        return OperationResult.success()

    async def get_user_roles(self, user: User) -> list[str]:
        """Role names assigned to `user`, in assignment order."""

        links = await self._unit_of_work.user_roles.get_all(UserRole.user_id == user.id)
        if not links:
            return []
        roles = await self._unit_of_work.roles.get_all(Role.id.in_([link.role_id for link in links]))
        names = {role.id: role.name for role in roles}
        return [names[link.role_id] for link in links if link.role_id in names]

    # ---------- purpose tokens ----------

    async def get_purpose_token(self, user: User, purpose: TokenPurpose | str) -> str:
        """Mint a token bound to (user, purpose), replacing any previous one."""

        purpose_value = _purpose_value(purpose)
        await self._unit_of_work.tokens.remove_where(
            PurposeToken.user_id == user.id, PurposeToken.purpose == purpose_value
        )
        raw_token = secrets.token_urlsafe(32)
        self._unit_of_work.tokens.add(
            PurposeToken(
                user_id=user.id,
                purpose=purpose_value,
                token_hash=hash_text(raw_token),
                expires_at=compute_expiry(self._settings.purpose_token_minutes),
            )
        )
        await self._unit_of_work.save_changes()
        return raw_token

    async def get_token_password(self, user: User) -> str:
        """Mint the password reset token of `user`."""
        return await self.get_purpose_token(user, TokenPurpose.RESET_PASSWORD)

    async def verify_user_token(
        self, user: User | None, purpose: TokenPurpose | str, token: str
    ) -> bool:
        """True only for the live token minted for this exact user and purpose."""

        if user is None or not token:
            return False
        stored = await self._unit_of_work.tokens.get_first(
            PurposeToken.user_id == user.id,
            PurposeToken.purpose == _purpose_value(purpose),
        )
        if stored is None or stored.expires_at <= datetime.utcnow():
            return False
        return hmac.compare_digest(stored.token_hash, hash_text(token))

    async def consume_user_token(
        self, user: User | None, purpose: TokenPurpose | str, token: str
    ) -> bool:
        """Verify the token and delete it so it cannot be replayed."""

        if not await self.verify_user_token(user, purpose, token):
            return False
        await self._unit_of_work.tokens.remove_where(
            PurposeToken.user_id == user.id,
            PurposeToken.purpose == _purpose_value(purpose),
        )
        await self._unit_of_work.save_changes()
        return True

    # ---------- authentication ----------

    async def login(self, user: User | None, password: str, remember_user: bool = False) -> LoginResult:
        """Check credentials and issue a session token.

        Every failure is reported through `LoginResult.outcome`; wrong
        passwords count towards the lockout threshold. A locked account is
        refused before the password is checked; every other account state is
        only reported to callers that know the password.
        """

        if user is None:
            return LoginResult(outcome=LoginOutcome.USER_NOT_FOUND)

        now = datetime.utcnow()
        if user.lockout_end is not None and user.lockout_end > now:
            return LoginResult(outcome=LoginOutcome.USER_LOCKED, user_id=user.id)

        if not verify_password(password, user.password_hash):
            user.access_failed_count = (user.access_failed_count or 0) + 1
            if user.access_failed_count >= self._settings.max_failed_access_attempts:
                user.lockout_end = now + timedelta(minutes=self._settings.lockout_minutes)
                user.access_failed_count = 0
                logger.warning("IdentitiesService.login => user %s locked out", user.id)
            self._unit_of_work.users.update(user)
            await self._unit_of_work.save_changes()
            return LoginResult(outcome=LoginOutcome.PASSWORD_INVALID, user_id=user.id)

        if not user.is_active or not await self.get_user_roles(user):
            return LoginResult(outcome=LoginOutcome.PERMISSION_DENIED, user_id=user.id)
        if not user.security_stamp:
            return LoginResult(outcome=LoginOutcome.SESSION_INVALID, user_id=user.id)

        user.access_failed_count = 0
        user.lockout_end = None
        user.last_login_at = now
        self._unit_of_work.users.update(user)
        await self._unit_of_work.save_changes()

        minutes = (
            self._settings.remember_token_expires_minutes
            if remember_user
            else self._settings.access_token_expires_minutes
        )
        expires_at = compute_expiry(minutes)
        token = SessionToken(access_token=create_session_token(user, expires_at), expires_at=expires_at)
        return LoginResult(outcome=LoginOutcome.SUCCESS, user_id=user.id, token=token)

    async def update_user_password(self, user: User, new_password: str) -> bool:
        """Rehash the password, rotate the security stamp and drop reset tokens."""

        try:
            user.password_hash = hash_password(new_password)
            user.security_stamp = new_security_stamp()
            user.access_failed_count = 0
            user.lockout_end = None
            self._unit_of_work.users.update(user)
            await self._unit_of_work.tokens.remove_where(
                PurposeToken.user_id == user.id,
                PurposeToken.purpose == TokenPurpose.RESET_PASSWORD.value,
            )
            await self._unit_of_work.save_changes()
        except SQLAlchemyError:
            logger.exception("IdentitiesService.update_user_password => ")
            return False
        return True
