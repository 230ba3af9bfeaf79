"""Tests for purpose tokens, login outcomes and password rotation."""
from datetime import datetime

import pytest

from helpdesk.config import Settings
from helpdesk.enums import LoginOutcome, RoleName, TokenPurpose
from helpdesk.models import User
from helpdesk.repository import UnitOfWork
from helpdesk.security import decode_access_token
from helpdesk.services import IdentitiesService

from conftest import PASSWORD


@pytest.mark.asyncio
async def test_purpose_token_is_bound_to_user_and_purpose(identities: IdentitiesService, make_user) -> None:
    alice = await make_user()
    bob = await make_user(username="bob", email="bob@example.com")

    token = await identities.get_token_password(alice)

    assert await identities.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, token)
    assert not await identities.verify_user_token(bob, TokenPurpose.RESET_PASSWORD, token)
    assert not await identities.verify_user_token(alice, TokenPurpose.CONFIRM_EMAIL, token)
    assert not await identities.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, token + "x")
    assert not await identities.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, "")
    assert not await identities.verify_user_token(None, TokenPurpose.RESET_PASSWORD, token)


@pytest.mark.asyncio
async def test_new_token_replaces_previous_one(identities: IdentitiesService, make_user) -> None:
    alice = await make_user()

    first = await identities.get_purpose_token(alice, TokenPurpose.RESET_PASSWORD)
    second = await identities.get_purpose_token(alice, TokenPurpose.RESET_PASSWORD)

    assert first != second
    assert not await identities.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, first)
    assert await identities.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, second)


@pytest.mark.asyncio
async def test_expired_token_is_rejected(
    unit_of_work: UnitOfWork, settings: Settings, make_user
) -> None:
    alice = await make_user()
    expired = IdentitiesService(unit_of_work, settings.model_copy(update={"purpose_token_minutes": -1}))

    token = await expired.get_token_password(alice)

    assert not await expired.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, token)


@pytest.mark.asyncio
async def test_consumed_token_cannot_be_replayed(identities: IdentitiesService, make_user) -> None:
    alice = await make_user()
    token = await identities.get_purpose_token(alice, TokenPurpose.CONFIRM_EMAIL)

    assert await identities.consume_user_token(alice, TokenPurpose.CONFIRM_EMAIL, token)
    assert not await identities.consume_user_token(alice, TokenPurpose.CONFIRM_EMAIL, token)


@pytest.mark.asyncio
async def test_password_update_rotates_stamp_and_drops_reset_tokens(
    identities: IdentitiesService, make_user
) -> None:
    alice = await make_user()
    token = await identities.get_token_password(alice)
    old_stamp = alice.security_stamp

    assert await identities.update_user_password(alice, "brand-new-Pass1")

    assert alice.security_stamp != old_stamp
    assert not await identities.verify_user_token(alice, TokenPurpose.RESET_PASSWORD, token)
    assert (await identities.login(alice, PASSWORD)).outcome is LoginOutcome.PASSWORD_INVALID
    assert (await identities.login(alice, "brand-new-Pass1")).succeeded


@pytest.mark.asyncio
async def test_login_success_issues_session_token(identities: IdentitiesService, make_user) -> None:
    alice = await make_user(role=RoleName.SUPPORT_MANAGER)

    result = await identities.login(alice, PASSWORD)

    assert result.outcome is LoginOutcome.SUCCESS
    assert result.user_id == alice.id
    assert result.token is not None
    assert alice.last_login_at is not None
    assert alice.last_login_at <= datetime.utcnow()

    token_data = decode_access_token(result.token.access_token)
    assert token_data.user_id == alice.id
    assert token_data.email == "alice@example.com"
    assert token_data.role == RoleName.SUPPORT_MANAGER.value
    assert token_data.stamp == alice.security_stamp


@pytest.mark.asyncio
async def test_remembered_session_lasts_longer(identities: IdentitiesService, make_user) -> None:
    alice = await make_user()

    short = await identities.login(alice, PASSWORD)
    remembered = await identities.login(alice, PASSWORD, remember_user=True)

    assert remembered.token.expires_at > short.token.expires_at


@pytest.mark.asyncio
async def test_login_outcomes_for_rejected_users(identities: IdentitiesService, make_user) -> None:
    assert (await identities.login(None, PASSWORD)).outcome is LoginOutcome.USER_NOT_FOUND

    roleless = await make_user(username="nobody", email="nobody@example.com", role=None)
    assert (await identities.login(roleless, PASSWORD)).outcome is LoginOutcome.PERMISSION_DENIED

    inactive = await make_user(username="gone", email="gone@example.com")
    inactive.is_active = False
    assert (await identities.login(inactive, PASSWORD)).outcome is LoginOutcome.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_account_state_is_hidden_behind_the_password(identities: IdentitiesService, make_user) -> None:
    roleless = await make_user(username="nobody", email="nobody@example.com", role=None)
    assert (await identities.login(roleless, "wrong")).outcome is LoginOutcome.PASSWORD_INVALID

    inactive = await make_user(username="gone", email="gone@example.com")
    inactive.is_active = False
    assert (await identities.login(inactive, "wrong")).outcome is LoginOutcome.PASSWORD_INVALID
    assert inactive.access_failed_count == 1


@pytest.mark.asyncio
async def test_login_without_security_stamp_is_an_invalid_session(
    identities: IdentitiesService, make_user
) -> None:
    alice = await make_user()
    alice.security_stamp = ""

    result = await identities.login(alice, PASSWORD)

    assert result.outcome is LoginOutcome.SESSION_INVALID
    assert result.token is None


@pytest.mark.asyncio
async def test_repeated_wrong_passwords_lock_the_account(
    identities: IdentitiesService, settings: Settings, make_user
) -> None:
    alice = await make_user()

    for attempt in range(1, settings.max_failed_access_attempts):
        result = await identities.login(alice, "wrong")
        assert result.outcome is LoginOutcome.PASSWORD_INVALID
        assert alice.access_failed_count == attempt

    result = await identities.login(alice, "wrong")
    assert result.outcome is LoginOutcome.PASSWORD_INVALID
    assert alice.lockout_end is not None
    assert alice.access_failed_count == 0

    assert (await identities.login(alice, PASSWORD)).outcome is LoginOutcome.USER_LOCKED


@pytest.mark.asyncio
async def test_successful_login_resets_failure_counter(identities: IdentitiesService, make_user) -> None:
    alice = await make_user()

    await identities.login(alice, "wrong")
    await identities.login(alice, "wrong")
    assert alice.access_failed_count == 2

    assert (await identities.login(alice, PASSWORD)).succeeded
    assert alice.access_failed_count == 0


@pytest.mark.asyncio
async def test_roles_are_listed_in_assignment_order(identities: IdentitiesService, make_user) -> None:
    alice = await make_user(role=RoleName.SUPPORT_TECHNICIAN)

    await identities.add_to_role(alice, RoleName.ADMIN)
    await identities.add_to_role(alice, RoleName.ADMIN)

    assert await identities.get_user_roles(alice) == ["SupportTechnician", "Admin"]
    assert alice.role == "SupportTechnician"
    assert not (await identities.add_to_role(alice, "Janitor")).succeeded


@pytest.mark.asyncio
async def test_create_user_rejects_taken_email(identities: IdentitiesService, make_user) -> None:
    await make_user()

    result = await identities.create_user(User(username="alice2", email="alice@example.com"), PASSWORD)

    assert not result.succeeded
    assert result.errors
