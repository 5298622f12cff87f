"""Typed API errors and their JSON rendering.

Every failing request answers with ``{"error": CODE, "message": text}``.
Dependencies and routes raise ApiError; the handler registered in main.py
turns it into the response.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An error with a machine-readable code and an HTTP status."""

    def __init__(self, status_code: int, error: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message

    def body(self) -> dict[str, str]:
        return {"error": self.error, "message": self.message}


def _bad_request(error: str, message: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, error, message)


# Authentication
def no_token() -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED,
        "NO_TOKEN",
        'An "Authorization: Bearer <token>" header is required',
    )


def invalid_token() -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED,
        "INVALID_TOKEN",
        "The provided token is not bridged with any room",
    )


def server_error() -> ApiError:
    return ApiError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "SERVER_ERROR",
        "Something went wrong on our end",
    )


# Body integrity
def no_body() -> ApiError:
    return _bad_request("NO_BODY", "A JSON object body is required")


def no_message() -> ApiError:
    return _bad_request("NO_MESSAGE", 'The "message" attribute is missing')


def message_type() -> ApiError:
    return _bad_request("MESSAGE_TYPE", 'The "message" attribute must be a string')


def no_player() -> ApiError:
    return _bad_request("NO_PLAYER", 'The "player" attribute is missing')


def player_type() -> ApiError:
    return _bad_request("PLAYER_TYPE", 'The "player" attribute must be a string')


def no_player_id() -> ApiError:
    return _bad_request("NO_PLAYER_ID", "No Minecraft player matches the given identifier")


def no_reason() -> ApiError:
    return _bad_request("NO_REASON", 'The "reason" attribute is missing')


def reason_type() -> ApiError:
    return _bad_request("REASON_TYPE", 'The "reason" attribute must be a string')


def player_lookup_timeout() -> ApiError:
    return ApiError(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "PLAYER_LOOKUP_TIMEOUT",
        "Timed out looking up the player, try again",
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError as its typed JSON body."""
    request_id = getattr(request.state, "request_id", None)
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("[Request %s]: %s %s", request_id, exc.error, exc.message)
    else:
        logger.info("[Request %s]: %s", request_id, exc.error)
    return JSONResponse(status_code=exc.status_code, content=exc.body())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unexpected with the request id and hide it behind SERVER_ERROR."""
    request_id = getattr(request.state, "request_id", None)
    logger.exception("[Request %s]: Unhandled error", request_id, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=server_error().body(),
    )
