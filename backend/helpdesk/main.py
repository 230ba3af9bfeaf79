"""FastAPI application entry points.

`users_app` and `tickets_app` are the two microservices; `app` serves both
from a single process.
"""
from fastapi import APIRouter, FastAPI
from sqlalchemy import select

from . import models
from .config import get_settings
from .database import AsyncSessionLocal, engine
from .enums import RoleName
from .logging_config import configure_logging
from .models import Role
from .routers.attachments import router as attachments_router
from .routers.messages import router as messages_router
from .routers.tickets import router as tickets_router
from .routers.users import router as users_router

USERS_ROUTERS = (users_router,)
TICKETS_ROUTERS = (tickets_router, messages_router, attachments_router)


async def init_db() -> None:
    """Ensure database tables exist and the fixed role set is present."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(Role.name))
        existing = set(result.scalars().all())
        missing = [Role(name=role.value) for role in RoleName if role.value not in existing]
        if missing:
            session.add_all(missing)
            await session.commit()


def create_app(title: str, *routers: APIRouter) -> FastAPI:
    configure_logging(get_settings().log_level)

    application = FastAPI(title=title, version="0.1.0")
    for router in routers:
        application.include_router(router)

    @application.on_event("startup")
    async def on_startup() -> None:
        await init_db()

    @application.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple readiness check for uptime monitors."""

        return {"status": "ok"}

    return application


users_app = create_app("EasyWeb Users Service", *USERS_ROUTERS)
tickets_app = create_app("EasyWeb Tickets Service", *TICKETS_ROUTERS)
app = create_app("EasyWeb Helpdesk", *USERS_ROUTERS, *TICKETS_ROUTERS)
