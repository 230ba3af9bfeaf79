"""Enumerations shared by the Users and Tickets services."""
from enum import Enum, IntEnum


class Language(IntEnum):
    """User interface and mail language."""

    ENGLISH = 1
    SPANISH = 2


class ResponseCode(IntEnum):
    """Error categories attached to failed response envelopes."""

    OK = 0
    ERROR_TOKEN = 1
    ORIGIN_ACCESS = 2
    INVALID_USER_NAME = 3
    INVALID_PASSWORD = 4
    DB_CONNECTION_FAILED = 5
    NO_DATA_FOUND = 6
    SAVE_DATA_FAILED = 7
    NO_COMPANY = 8
    UNAUTHORIZED_ACCESS = 9
    DATA_ERROR = 10
    OTHER_ERROR = 11
    INVALID_MODEL = 12
    INVALID_ACCESS_TYPE = 13
    INVALID_TOKEN = 14


class Priority(IntEnum):
    """Ticket priorities. ALL is only meaningful as a filter."""

    ALL = -1
    NOT_SURE = 0
    LOWEST = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    HIGHEST = 5


class TicketStatus(IntEnum):
    """Ticket states. ALL is only meaningful as a filter."""

    ALL = -1
    PENDING = 0
    OPENED = 1
    PAUSED = 2
    FINISHED = 3


class OrderType(str, Enum):
    UP = "up"
    DOWN = "down"


class RoleName(str, Enum):
    """The fixed role set seeded at start-up."""

    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    SUPPORT = "Support"
    USER = "User"
    SUPPORT_MANAGER = "SupportManager"
    SUPPORT_TECHNICIAN = "SupportTechnician"


class TokenPurpose(str, Enum):
    RESET_PASSWORD = "ResetPassword"
    CONFIRM_EMAIL = "ConfirmEmail"


class LoginOutcome(str, Enum):
    """Result tags returned by IdentitiesService.login."""

    SUCCESS = "Success"
    USER_NOT_FOUND = "UserNotFound"
    PASSWORD_INVALID = "PasswordInvalid"
    USER_LOCKED = "UserLocked"
    SESSION_INVALID = "SessionInvalid"
    PERMISSION_DENIED = "PermissionDenied"
    FAILED = "Failed"


LOGIN_RESPONSE_CODES = {
    LoginOutcome.USER_NOT_FOUND: ResponseCode.INVALID_USER_NAME,
    LoginOutcome.PASSWORD_INVALID: ResponseCode.INVALID_PASSWORD,
    LoginOutcome.USER_LOCKED: ResponseCode.UNAUTHORIZED_ACCESS,
    LoginOutcome.SESSION_INVALID: ResponseCode.ERROR_TOKEN,
    LoginOutcome.PERMISSION_DENIED: ResponseCode.INVALID_ACCESS_TYPE,
    LoginOutcome.FAILED: ResponseCode.OTHER_ERROR,
}
