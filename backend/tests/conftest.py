"""Test fixtures for the backend."""
import os
import smtplib
from collections.abc import AsyncIterator, Awaitable, Callable
from email.message import EmailMessage
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_backend.db")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("MAX_ATTACHMENT_BYTES", "4096")

from helpdesk import models  # noqa: E402
from helpdesk.config import Settings, get_settings  # noqa: E402
from helpdesk.database import AsyncSessionLocal, engine  # noqa: E402
from helpdesk.dependencies import get_mailer  # noqa: E402
from helpdesk.enums import Language, RoleName  # noqa: E402
from helpdesk.mailer import Mailer  # noqa: E402
from helpdesk.main import app, init_db  # noqa: E402
from helpdesk.models import User  # noqa: E402
from helpdesk.repository import UnitOfWork  # noqa: E402
from helpdesk.services import IdentitiesService, UsersService  # noqa: E402


test_db_path = Path("test_backend.db")

PASSWORD = "s3cret-Pass"


class RecordingMailer(Mailer):
    """Mailer that keeps sent messages in memory instead of talking SMTP."""

    def __init__(self, settings: Settings, fail: bool = False) -> None:
        super().__init__(settings)
        self.fail = fail
        self.sent: list[EmailMessage] = []

    @property
    def enabled(self) -> bool:
        return True

    def _transmit(self, message: EmailMessage) -> None:
        if self.fail:
            raise smtplib.SMTPServerDisconnected("relay went away")
        self.sent.append(message)


@pytest_asyncio.fixture(autouse=True)
async def prepare_database() -> AsyncIterator[None]:
    """Recreate the schema and seed roles before every test."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.drop_all)
    await init_db()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.drop_all)


def pytest_sessionfinish(session, exitstatus) -> None:
    if test_db_path.exists():
        test_db_path.unlink()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def mailer(settings: Settings) -> AsyncIterator[RecordingMailer]:
    """A recording mailer, also injected into the app."""

    recording = RecordingMailer(settings)
    app.dependency_overrides[get_mailer] = lambda: recording
    yield recording
    app.dependency_overrides.pop(get_mailer, None)


@pytest_asyncio.fixture
async def client(mailer: RecordingMailer) -> AsyncIterator[AsyncClient]:
    """Provide an HTTP client for integration tests."""

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def unit_of_work() -> AsyncIterator[UnitOfWork]:
    async with AsyncSessionLocal() as session:
        yield UnitOfWork(session)


@pytest_asyncio.fixture
async def identities(unit_of_work: UnitOfWork, settings: Settings) -> IdentitiesService:
    return IdentitiesService(unit_of_work, settings)


@pytest_asyncio.fixture
async def users_service(
    unit_of_work: UnitOfWork,
    identities: IdentitiesService,
    mailer: RecordingMailer,
    settings: Settings,
) -> UsersService:
    return UsersService(unit_of_work, identities, mailer, settings)


@pytest_asyncio.fixture
async def make_user(
    identities: IdentitiesService,
) -> Callable[..., Awaitable[User]]:
    """Factory that persists a user with a password and a role."""

    async def _make_user(
        username: str = "alice",
        email: str = "alice@example.com",
        role: RoleName | None = RoleName.USER,
        password: str = PASSWORD,
        language: Language = Language.ENGLISH,
    ) -> User:
        user = User(
            username=username,
            email=email,
            full_name=username.title(),
            phone_number="+34600000000",
            language=language,
        )
        roles = (role,) if role is not None else ()
        result = await identities.create_user(user, password, *roles)
        assert result.succeeded, result.errors
        return user

    return _make_user


@pytest.fixture
def auth_headers(client: AsyncClient) -> Callable[..., Awaitable[dict[str, str]]]:
    """Log in through the API and return the bearer header."""

    async def _auth_headers(email: str, password: str = PASSWORD) -> dict[str, str]:
        response = await client.post("/users/login", json={"email": email, "password": password})
        token = response.json()["ReturnData"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
