"""
Errors raised while talking to the remote API, and helpers to classify them
"""
from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_MESSAGES = {
    400: "Bad request. Please check your input.",
    401: "You are not authorized. Please log in again.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    409: "There was a conflict with your request.",
    422: "The data you provided is invalid.",
    429: "Too many requests. Please try again later.",
    500: "Internal server error. Please try again later.",
    502: "Bad gateway. The server is temporarily unavailable.",
    503: "Service unavailable. Please try again later.",
}


class ValidationError(ValueError):
    """Invalid user input; the message is shown to the user as-is."""


class ApiError(Exception):
    """
    A failed call to the remote API.

    status is None when no response was received at all.
    """

    def __init__(self, message: str = "", status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    @classmethod
    def from_response(cls, response) -> "ApiError":
        try:
            payload = response.json()
        except ValueError:
            payload = None
        message = ""
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error") or ""
            if not isinstance(message, str):
                message = str(message)
        return cls(message, status=response.status_code, payload=payload)


def handle_api_error(error: Any) -> str:
    """Turn any error into a message fit for the user."""
    if not isinstance(error, ApiError):
        return "An unexpected error occurred"
    if error.message:
        return error.message
    if error.status is not None:
        return STATUS_MESSAGES.get(error.status, f"Request failed with status {error.status}")
    return "An unexpected error occurred"


def is_network_error(error: Any) -> bool:
    return isinstance(error, ApiError) and error.status is None


def is_auth_error(error: Any) -> bool:
    return isinstance(error, ApiError) and error.status == 401


def is_validation_error(error: Any) -> bool:
    return isinstance(error, ApiError) and error.status in (400, 422)


def is_client_error(error: Any) -> bool:
    return isinstance(error, ApiError) and error.status is not None and 400 <= error.status < 500


def is_server_error(error: Any) -> bool:
    return isinstance(error, ApiError) and error.status is not None and 500 <= error.status < 600


def is_retryable_error(error: Any) -> bool:
    return is_network_error(error) or is_server_error(error)


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """
    Call fn, retrying network and server errors with exponential backoff.

    Client errors and anything that is not an ApiError are raised at once.
    """
    sleep = sleep or time.sleep
    attempt = 0
    while True:
        try:
            return fn()
        except ApiError as exc:
            if not is_retryable_error(exc) or attempt >= max_retries:
                raise
            jitter = random.random() * 0.1 * base_delay
            delay = base_delay * (2 ** attempt) + jitter
            attempt += 1
            logger.info("Retrying request (%d/%d) in %.2fs", attempt, max_retries, delay)
            sleep(delay)
