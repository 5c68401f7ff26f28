import pytest

from billsplit.errors import (
    ApiError,
    handle_api_error,
    is_auth_error,
    is_client_error,
    is_network_error,
    is_retryable_error,
    is_server_error,
    is_validation_error,
    retry_with_backoff,
)


def test_handle_api_error_prefers_message():
    assert handle_api_error(ApiError("Friend not found", status=404)) == "Friend not found"


@pytest.mark.parametrize(
    "status,expected",
    [
        (400, "Bad request. Please check your input."),
        (401, "You are not authorized. Please log in again."),
        (429, "Too many requests. Please try again later."),
        (503, "Service unavailable. Please try again later."),
        (418, "Request failed with status 418"),
    ],
)
def test_handle_api_error_falls_back_to_status(status, expected):
    assert handle_api_error(ApiError(status=status)) == expected


def test_handle_api_error_unknown_errors():
    assert handle_api_error(RuntimeError("boom")) == "An unexpected error occurred"
    assert handle_api_error(ApiError()) == "An unexpected error occurred"


def test_classification():
    network = ApiError("connection refused")
    assert is_network_error(network) and is_retryable_error(network)
    assert not is_client_error(network)

    assert is_auth_error(ApiError(status=401))
    assert is_validation_error(ApiError(status=422))
    assert is_validation_error(ApiError(status=400))
    assert is_client_error(ApiError(status=404))
    assert is_server_error(ApiError(status=502))
    assert is_retryable_error(ApiError(status=500))
    assert not is_retryable_error(ApiError(status=409))
    assert not is_server_error(ValueError())


def test_retry_succeeds_after_server_errors():
    delays = []
    attempts = iter([ApiError(status=503), ApiError("reset"), "ok"])

    def call():
        result = next(attempts)
        if isinstance(result, Exception):
            raise result
        return result

    assert retry_with_backoff(call, max_retries=3, base_delay=1.0, sleep=delays.append) == "ok"
    assert len(delays) == 2
    assert 1.0 <= delays[0] <= 1.1
    assert 2.0 <= delays[1] <= 2.1


def test_retry_gives_up_after_max_retries():
    delays = []
    calls = []

    def call():
        calls.append(1)
        raise ApiError(status=500)

    with pytest.raises(ApiError):
        retry_with_backoff(call, max_retries=2, base_delay=0.5, sleep=delays.append)
    assert len(calls) == 3
    assert len(delays) == 2


def test_retry_never_retries_client_errors():
    calls = []

    def call():
        calls.append(1)
        raise ApiError(status=404)

    with pytest.raises(ApiError):
        retry_with_backoff(call, sleep=lambda _: None)
    assert len(calls) == 1


def test_retry_does_not_catch_other_exceptions():
    def call():
        raise KeyError("x")

    with pytest.raises(KeyError):
        retry_with_backoff(call, sleep=lambda _: None)
