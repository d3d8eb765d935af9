"""Unit tests for docker_credential_env/retry_utils.py"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, NoCredentialsError, ReadTimeoutError

from docker_credential_env.errors import TokenDecodeError, TokenExchangeTimeoutError
from docker_credential_env.retry_utils import (
    Deadline,
    RetryableErrorType,
    backoff_delay,
    is_retryable_error,
    retry_operation,
)


def _client_error(code: str, status: int) -> ClientError:
    return ClientError({"Error": {"Code": code}, "ResponseMetadata": {"HTTPStatusCode": status}}, "Op")


class TestIsRetryableError:
    """Tests for is_retryable_error"""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (_client_error("ThrottlingException", 400), (True, RetryableErrorType.TEMPORARY)),
            (_client_error("TooManyRequestsException", 429), (True, RetryableErrorType.TEMPORARY)),
            (_client_error("InternalFailure", 500), (True, RetryableErrorType.TEMPORARY)),
            (_client_error("AccessDeniedException", 400), (False, RetryableErrorType.PERMANENT)),
            (_client_error("UnrecognizedClientException", 400), (False, RetryableErrorType.PERMANENT)),
            (ReadTimeoutError(endpoint_url="https://sts.amazonaws.com"), (True, RetryableErrorType.NETWORK)),
            (NoCredentialsError(), (False, RetryableErrorType.PERMANENT)),
            (TokenDecodeError("bad token"), (False, RetryableErrorType.PERMANENT)),
            (ConnectionResetError("connection reset by peer"), (True, RetryableErrorType.NETWORK)),
            (KeyError("authorizationData"), (False, RetryableErrorType.PERMANENT)),
        ],
    )
    def test_classification(self, error, expected):
        assert is_retryable_error(error) == expected


class TestBackoffDelay:
    """Tests for backoff_delay"""

    def test_exponential_growth_is_capped(self):
        delays = [backoff_delay(attempt, 0.2, 5.0, 2.0, jitter=False) for attempt in range(8)]
        assert delays == [0.2, 0.4, 0.8, 1.6, 3.2, 5.0, 5.0, 5.0]

    def test_jitter_never_exceeds_cap(self):
        assert all(backoff_delay(attempt, 1.0, 5.0, 2.0, jitter=True) <= 5.0 for attempt in range(20))


class TestRetryOperation:
    """Tests for retry_operation"""

    def test_returns_first_success(self):
        operation = MagicMock(return_value="ok")
        assert retry_operation(operation) == "ok"
        operation.assert_called_once()

    def test_retries_until_success(self, no_retry_sleep):
        operation = MagicMock(side_effect=[_client_error("Throttling", 400), "ok"])
        assert retry_operation(operation, jitter=False, initial_delay=0.5) == "ok"
        assert no_retry_sleep == [0.5]

    def test_raises_last_error_after_max_attempts(self):
        error = _client_error("ServiceUnavailable", 503)
        operation = MagicMock(side_effect=error)

        with pytest.raises(ClientError):
            retry_operation(operation, max_attempts=3)

        assert operation.call_count == 3

    def test_non_retryable_error_is_raised_immediately(self):
        operation = MagicMock(side_effect=TokenDecodeError("bad token"))

        with pytest.raises(TokenDecodeError):
            retry_operation(operation, max_attempts=5)

        operation.assert_called_once()

    def test_expired_deadline_stops_before_calling(self):
        operation = MagicMock(return_value="ok")

        with pytest.raises(TokenExchangeTimeoutError) as exc_info:
            retry_operation(operation, deadline=Deadline(0, "exchange"))

        operation.assert_not_called()
        assert str(exc_info.value) == "exchange timed out after 0s"

    def test_backoff_longer_than_remaining_time_times_out(self, no_retry_sleep):
        operation = MagicMock(side_effect=_client_error("Throttling", 400))

        with pytest.raises(TokenExchangeTimeoutError) as exc_info:
            retry_operation(operation, initial_delay=60.0, max_delay=60.0, jitter=False, deadline=Deadline(30, "exchange"))

        operation.assert_called_once()
        assert no_retry_sleep == []
        assert isinstance(exc_info.value.__cause__, ClientError)

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            retry_operation(MagicMock(), max_attempts=0)

    def test_single_attempt_raises_without_sleeping(self, no_retry_sleep):
        operation = MagicMock(side_effect=_client_error("Throttling", 400))

        with pytest.raises(ClientError):
            retry_operation(operation, max_attempts=1)

        operation.assert_called_once()
        assert no_retry_sleep == []

    def test_sleeps_between_every_attempt(self, no_retry_sleep):
        operation = MagicMock(side_effect=_client_error("Throttling", 400))

        with pytest.raises(ClientError):
            retry_operation(operation, max_attempts=4, jitter=False)

        assert operation.call_count == 4
        assert no_retry_sleep == [0.2, 0.4, 0.8]
