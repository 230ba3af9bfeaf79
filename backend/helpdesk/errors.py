"""Error response helpers: RFC 7807 problems and envelope failures."""

from __future__ import annotations

import logging

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .enums import ResponseCode
from .schemas import CreateEditRemoveResponseDto, GenericResponseDto

logger = logging.getLogger(__name__)

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: str | None = None


def problem_response(
    detail: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    instance: str | None = None,
) -> JSONResponse:
    problem = ProblemDetail(
        title="An error occurred while processing your request.",
        status=status_code,
        detail=detail,
        instance=instance,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )


def envelope_from_result(
    result: CreateEditRemoveResponseDto, location: str, return_data: object = None
) -> GenericResponseDto:
    """Wrap a service result; its errors become a DataError block."""

    if result.errors:
        return GenericResponseDto.failure(ResponseCode.DATA_ERROR, ", ".join(result.errors), location)
    return GenericResponseDto(return_data=return_data)


def envelope_from_exception(exc: Exception, location: str) -> GenericResponseDto:
    logger.exception("%s => ", location)
    return GenericResponseDto.failure(ResponseCode.OTHER_ERROR, str(exc), location)
