"""Integration tests for the users API."""
import re

import pytest
from httpx import AsyncClient

from helpdesk.enums import ResponseCode, RoleName
from helpdesk.models import Role
from helpdesk.security import client_password_digest

from conftest import PASSWORD, RecordingMailer

TECHNICIAN_PAYLOAD = {
    "username": "tina",
    "email": "tina@example.com",
    "phone_number": "+34622222222",
    "full_name": "Tina Tech",
    "language": 1,
}


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_technician_and_log_in_with_default_password(client: AsyncClient, settings) -> None:
    """A new staff account can sign in with the digest of the default password."""

    response = await client.post("/users/create/technician", json=TECHNICIAN_PAYLOAD)
    assert response.status_code == 200
    assert response.json() == {"succeeded": True, "errors": []}

    technicians = (await client.get("/users/gettechnicians")).json()
    assert [user["username"] for user in technicians] == ["tina"]
    assert technicians[0]["role"] == "SupportTechnician"

    role = (await client.get(f"/users/getrole/{technicians[0]['id']}")).json()
    assert role["name"] == "SupportTechnician"

    login = await client.post(
        "/users/login",
        json={
            "email": "tina@example.com",
            "password": client_password_digest(settings.default_user_password),
        },
    )
    body = login.json()
    assert body["Error"] is None
    assert body["ReturnData"]["access_token"]
    assert body["ReturnData"]["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_duplicate_user_is_rejected_with_plain_text(client: AsyncClient) -> None:
    await client.post("/users/create/manager", json=TECHNICIAN_PAYLOAD)

    response = await client.post("/users/create/manager", json=TECHNICIAN_PAYLOAD)

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    assert "tina" in response.text
    assert "tina@example.com" in response.text


@pytest.mark.asyncio
async def test_create_with_missing_role_saves_nothing(client: AsyncClient, unit_of_work) -> None:
    await unit_of_work.roles.remove_where(Role.name == RoleName.SUPPORT_MANAGER.value)
    await unit_of_work.save_changes()

    response = await client.post("/users/create/manager", json=TECHNICIAN_PAYLOAD)

    assert response.status_code == 400
    assert "SupportManager" in response.text
    assert (await client.get("/users/getall")).json() == []

    retry = await client.post("/users/create/technician", json=TECHNICIAN_PAYLOAD)
    assert retry.json() == {"succeeded": True, "errors": []}


@pytest.mark.asyncio
async def test_invalid_payload_is_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/users/create/manager", json={**TECHNICIAN_PAYLOAD, "email": "not-an-email"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_lookups_return_empty_objects_on_miss(client: AsyncClient, make_user) -> None:
    alice = await make_user()

    assert (await client.get(f"/users/getbyid/{alice.id}")).json()["username"] == "alice"
    assert (await client.get("/users/getbyusername/alice")).json()["id"] == alice.id
    assert [user["id"] for user in (await client.get("/users/getall")).json()] == [alice.id]

    missing = (await client.get("/users/getbyid/999")).json()
    assert missing["id"] == 0
    assert missing["username"] == ""
    assert (await client.get("/users/getrole/999")).json() == {"id": 0, "name": ""}


@pytest.mark.asyncio
async def test_update_user(client: AsyncClient, make_user, unit_of_work) -> None:
    alice = await make_user()
    alice_id = alice.id

    response = await client.post(
        f"/users/update/{alice_id}",
        json={**TECHNICIAN_PAYLOAD, "username": "alice", "email": "alice@example.com"},
    )
    assert response.status_code == 200
    assert response.json()["succeeded"] is True
    await unit_of_work.session.refresh(alice)
    assert alice.full_name == "Tina Tech"

    missing = await client.post("/users/update/999", json=TECHNICIAN_PAYLOAD)
    assert missing.status_code == 500
    assert missing.headers["content-type"] == "application/problem+json"
    assert missing.json()["detail"] == "The user could not be updated"


@pytest.mark.asyncio
async def test_change_language_envelope(client: AsyncClient, make_user) -> None:
    alice = await make_user()

    response = await client.put(f"/users/changelanguage/{alice.id}", json={"language_id": 2})
    assert response.json() == {"ReturnData": True, "Error": None}
    assert (await client.get(f"/users/getbyid/{alice.id}")).json()["language"] == 2

    unknown = await client.put("/users/changelanguage/999", json={"language_id": 2})
    assert unknown.json()["ReturnData"] is True


@pytest.mark.asyncio
async def test_remove_user_envelope(client: AsyncClient, make_user) -> None:
    alice = await make_user()

    removed = await client.delete(f"/users/remove/{alice.id}")
    assert removed.json() == {"ReturnData": None, "Error": None}

    missing = (await client.delete("/users/remove/77")).json()
    assert missing["Error"]["Id"] == ResponseCode.DATA_ERROR
    assert "77" in missing["Error"]["Description"]
    assert missing["Error"]["Location"] == "Users/Remove"


@pytest.mark.asyncio
async def test_login_failures_map_to_response_codes(client: AsyncClient, make_user) -> None:
    await make_user()
    await make_user(username="nobody", email="nobody@example.com", role=None)

    unknown = (await client.post("/users/login", json={"email": "ghost@example.com", "password": "x"})).json()
    assert unknown["ReturnData"] is None
    assert unknown["Error"]["Id"] == ResponseCode.INVALID_USER_NAME

    wrong = (await client.post("/users/login", json={"email": "alice@example.com", "password": "x"})).json()
    assert wrong["Error"]["Id"] == ResponseCode.INVALID_PASSWORD
    assert wrong["Error"]["Location"] == "Users/Login"

    roleless = (await client.post("/users/login", json={"email": "nobody@example.com", "password": PASSWORD})).json()
    assert roleless["Error"]["Id"] == ResponseCode.INVALID_ACCESS_TYPE


@pytest.mark.asyncio
async def test_login_without_security_stamp_reports_a_token_error(
    client: AsyncClient, make_user, unit_of_work
) -> None:
    alice = await make_user()
    alice.security_stamp = ""
    await unit_of_work.save_changes()

    body = (await client.post("/users/login", json={"email": "alice@example.com", "password": PASSWORD})).json()

    assert body["ReturnData"] is None
    assert body["Error"]["Id"] == ResponseCode.ERROR_TOKEN == 1
    assert body["Error"]["Location"] == "Users/Login"


@pytest.mark.asyncio
async def test_lockout_through_the_api(client: AsyncClient, make_user, settings) -> None:
    await make_user()

    for _ in range(settings.max_failed_access_attempts):
        await client.post("/users/login", json={"email": "alice@example.com", "password": "x"})

    locked = (await client.post("/users/login", json={"email": "alice@example.com", "password": PASSWORD})).json()
    assert locked["Error"]["Id"] == ResponseCode.UNAUTHORIZED_ACCESS


@pytest.mark.asyncio
async def test_password_recovery_flow(
    client: AsyncClient, mailer: RecordingMailer, make_user, auth_headers
) -> None:
    """The mailed token resets the password and ends every existing session."""

    await make_user(role=RoleName.SUPPORT_MANAGER)
    headers = await auth_headers("alice@example.com")
    assert (await client.get("/tickets/getall", headers=headers)).status_code == 200

    response = await client.get("/users/sendemail/alice/example/com")
    assert response.status_code == 200
    assert response.json() is True
    assert len(mailer.sent) == 1
    token = re.search(r"token=([\w-]+)", mailer.sent[0].get_content()).group(1)

    form = {"username": "alice", "domain": "example", "tld": "com", "password": "n3w-Pass"}
    rejected = await client.post("/users/resetpassword", data={**form, "token": "forged"})
    assert rejected.status_code == 400
    assert rejected.json() is False

    accepted = await client.post("/users/resetpassword", data={**form, "token": token})
    assert accepted.status_code == 200
    assert accepted.json() is True

    replayed = await client.post("/users/resetpassword", data={**form, "token": token})
    assert replayed.status_code == 400

    assert (await client.get("/tickets/getall", headers=headers)).status_code == 401
    old = (await client.post("/users/login", json={"email": "alice@example.com", "password": PASSWORD})).json()
    assert old["Error"]["Id"] == ResponseCode.INVALID_PASSWORD
    new = (await client.post("/users/login", json={"email": "alice@example.com", "password": "n3w-Pass"})).json()
    assert new["Error"] is None


@pytest.mark.asyncio
async def test_send_email_to_unknown_address_sends_nothing(
    client: AsyncClient, mailer: RecordingMailer
) -> None:
    response = await client.get("/users/sendemail/ghost/example/com")

    assert response.json() is True
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_reset_password_for_unknown_address(client: AsyncClient) -> None:
    response = await client.post(
        "/users/resetpassword",
        data={"username": "ghost", "domain": "example", "tld": "com", "password": "x", "token": "t"},
    )
    assert response.status_code == 400
    assert response.json() is False
