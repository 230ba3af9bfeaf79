"""User endpoints for the Users service."""
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Form, status
from fastapi.responses import JSONResponse, PlainTextResponse

from ..dependencies import get_identities_service, get_mailer, get_users_service
from ..enums import LOGIN_RESPONSE_CODES, RoleName, TokenPurpose
from ..errors import envelope_from_exception, envelope_from_result, problem_response
from ..mailer import Mailer
from ..schemas import (
    ChangeLanguageDto,
    CreateUserDto,
    GenericResponseDto,
    LoginDto,
    OperationResult,
    ResetPasswordDto,
    RoleDto,
    UserDto,
)
from ..services import IdentitiesService, UsersService
from ..translations import translate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/getall", response_model=list[UserDto])
async def get_all(service: UsersService = Depends(get_users_service)) -> list[UserDto]:
    """Return every user; an empty list if the lookup fails."""

    try:
        return await service.get_all()
    except Exception:
        logger.exception("Users/GetAll => ")
        return []


@router.get("/getbyid/{id}", response_model=UserDto)
async def get_by_id(id: int, service: UsersService = Depends(get_users_service)) -> UserDto:
    """Return the user, or an empty object when it does not exist."""

    try:
        return await service.get_by_id(id)
    except Exception:
        logger.exception("Users/GetById => ")
        return UserDto()


@router.get("/getbyusername/{username}", response_model=UserDto)
async def get_by_user_name(username: str, service: UsersService = Depends(get_users_service)) -> UserDto:
    """Return the user with this user name, or an empty object."""

    try:
        return await service.get_by_user_name(username)
    except Exception:
        logger.exception("Users/GetByUserName => ")
        return UserDto()


@router.get("/getrole/{user_id}", response_model=RoleDto)
async def get_role(user_id: int, service: UsersService = Depends(get_users_service)) -> RoleDto:
    """Return the first role assigned to the user."""

    try:
        return await service.get_role_by_user_id(user_id)
    except Exception:
        logger.exception("Users/GetRole => ")
        return RoleDto()


async def _create_with_role(user_dto: CreateUserDto, role: RoleName, service: UsersService) -> Any:
    try:
        result = await service.create(user_dto, role)
    except Exception as exc:
        logger.exception("Users/Create%s => ", role.value)
        return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)
    if not result.succeeded:
        return PlainTextResponse(", ".join(result.errors), status_code=status.HTTP_400_BAD_REQUEST)
    return result


@router.post("/create/manager", response_model=OperationResult)
async def create_manager(
    user_dto: CreateUserDto, service: UsersService = Depends(get_users_service)
) -> Any:
    """Create a user with the SupportManager role and the default password."""

    return await _create_with_role(user_dto, RoleName.SUPPORT_MANAGER, service)


@router.post("/create/technician", response_model=OperationResult)
async def create_technician(
    user_dto: CreateUserDto, service: UsersService = Depends(get_users_service)
) -> Any:
    """Create a user with the SupportTechnician role and the default password."""

    return await _create_with_role(user_dto, RoleName.SUPPORT_TECHNICIAN, service)


@router.post("/update/{user_id}", response_model=OperationResult)
async def update(
    user_id: int, user_dto: CreateUserDto, service: UsersService = Depends(get_users_service)
) -> Any:
    """Overwrite the profile fields of a user."""

    try:
        result = await service.update(user_id, user_dto)
    except Exception as exc:
        logger.exception("Users/Update => ")
        return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)
    if not result.succeeded:
        return problem_response(translate("error_user_update"), instance=f"/users/update/{user_id}")
    return result


@router.put("/changelanguage/{user_id}", response_model=GenericResponseDto)
async def change_language(
    user_id: int,
    change_language_dto: ChangeLanguageDto,
    service: UsersService = Depends(get_users_service),
) -> GenericResponseDto:
    """Change the interface and mail language of a user."""

    try:
        await service.change_language(change_language_dto, user_id)
    except Exception as exc:
        return envelope_from_exception(exc, "Users/ChangeLanguage")
    return GenericResponseDto(return_data=True)


@router.delete("/remove/{id}", response_model=GenericResponseDto)
async def remove(id: int, service: UsersService = Depends(get_users_service)) -> GenericResponseDto:
    """Delete a user."""

    try:
        result = await service.remove(id)
    except Exception as exc:
        return envelope_from_exception(exc, "Users/Remove")
    return envelope_from_result(result, "Users/Remove")


@router.get("/gettechnicians", response_model=list[UserDto])
async def get_technicians(service: UsersService = Depends(get_users_service)) -> list[UserDto]:
    """Return every support technician."""

    try:
        return await service.get_technicians()
    except Exception:
        logger.exception("Users/GetTechnicians => ")
        return []


@router.get("/sendemail/{username}/{domain}/{tld}", response_model=bool)
async def send_email(
    username: str,
    domain: str,
    tld: str,
    background_tasks: BackgroundTasks,
    service: UsersService = Depends(get_users_service),
    mailer: Mailer = Depends(get_mailer),
) -> Any:
    """Queue the password recovery mail for username@domain.tld.

    Unknown addresses still answer true; delivery runs after the response
    and its outcome is logged by the mailer.
    """

    try:
        mail = await service.build_recovery_mail(username, domain, tld)
    except Exception:
        logger.exception("Users/SendEmail => ")
        return JSONResponse(content=False, status_code=status.HTTP_400_BAD_REQUEST)
    if mail is not None:
        background_tasks.add_task(mailer.deliver, mail)
    return True


@router.post("/resetpassword", response_model=bool)
async def reset_password(
    username: str = Form(...),
    domain: str = Form(...),
    tld: str = Form(...),
    password: str = Form(...),
    token: str = Form(""),
    service: UsersService = Depends(get_users_service),
    identities: IdentitiesService = Depends(get_identities_service),
) -> Any:
    """Set a new password for the account addressed by the recovery link."""

    reset_dto = ResetPasswordDto(username=username, domain=domain, tld=tld, password=password, token=token)
    failure = JSONResponse(content=False, status_code=status.HTTP_400_BAD_REQUEST)
    try:
        user = await service.reset_password(reset_dto)
        if user is None:
            return failure
        if not await identities.verify_user_token(user, TokenPurpose.RESET_PASSWORD, reset_dto.token):
            logger.info("Users/ResetPassword => rejected token for user %s", user.id)
            return failure
        if await identities.update_user_password(user, reset_dto.password):
            return True
    except Exception:
        logger.exception("Users/ResetPassword => ")
    return failure


@router.post("/login", response_model=GenericResponseDto)
async def login(
    login_dto: LoginDto,
    remember_user: bool = False,
    service: UsersService = Depends(get_users_service),
) -> GenericResponseDto:
    """Authenticate by email and password and return a session token."""

    result = await service.login(login_dto, remember_user)
    if result.succeeded:
        return GenericResponseDto(return_data=result.token)
    return GenericResponseDto.failure(
        LOGIN_RESPONSE_CODES[result.outcome], result.outcome.value, "Users/Login"
    )
