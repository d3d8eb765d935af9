"""Retry utilities for AWS calls with bounded exponential backoff and an overall deadline"""

import logging
import random
import time
from enum import Enum
from typing import Callable, Optional, Tuple, TypeVar

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from docker_credential_env.errors import CredentialHelperError, TokenExchangeTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

THROTTLING_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "ThrottledException",
    "RequestThrottledException",
    "TooManyRequestsException",
    "ProvisionedThroughputExceededException",
    "TransactionInProgressException",
    "RequestLimitExceeded",
    "BandwidthLimitExceeded",
    "LimitExceededException",
    "RequestThrottled",
    "SlowDown",
    "PriorRequestNotComplete",
    "EC2ThrottledException",
    "IDPCommunicationError",
}

TRANSIENT_ERROR_CODES = {"RequestTimeout", "RequestTimeoutException", "InternalError", "ServiceUnavailable"}


class RetryableErrorType(Enum):
    """Types of errors that should trigger retries"""

    NETWORK = "network"  # Connection errors, timeouts
    TEMPORARY = "temporary"  # 5xx errors, throttling
    PERMANENT = "permanent"  # 4xx errors (except throttling), auth failures, bad payloads


class Deadline:
    """Fixed end-to-end time budget measured on the monotonic clock"""

    def __init__(self, timeout: float, operation: str = "operation"):
        self.timeout = timeout
        self.operation = operation
        self._expires_at = time.monotonic() + timeout

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self) -> None:
        """Raise TokenExchangeTimeoutError once the budget is spent"""
        if self.expired():
            raise TokenExchangeTimeoutError(self.operation, self.timeout)


def is_retryable_error(error: Exception) -> Tuple[bool, RetryableErrorType]:
    """Determine if an error is retryable and what type it is

    Args:
        error: The exception that occurred

    Returns:
        Tuple of (is_retryable, error_type)
    """
    # Our own errors describe configuration or payload problems, retrying won't help
    if isinstance(error, CredentialHelperError):
        return False, RetryableErrorType.PERMANENT

    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError, ConnectionClosedError)):
        return True, RetryableErrorType.NETWORK

    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode") or 0
        if code in THROTTLING_ERROR_CODES or status == 429:
            return True, RetryableErrorType.TEMPORARY
        if code in TRANSIENT_ERROR_CODES or status >= 500:
            return True, RetryableErrorType.TEMPORARY
        return False, RetryableErrorType.PERMANENT

    if isinstance(error, BotoCoreError):
        # Credential/config/parameter validation problems from botocore itself
        return False, RetryableErrorType.PERMANENT

    combined = str(error).lower()
    network_indicators = [
        "connection",
        "timeout",
        "timed out",
        "network",
        "refused",
        "unreachable",
        "reset",
        "broken pipe",
        "temporary failure",
    ]
    if any(indicator in combined for indicator in network_indicators):
        return True, RetryableErrorType.NETWORK

    return False, RetryableErrorType.PERMANENT


def backoff_delay(
    attempt: int,
    initial_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    """Delay before the retry following `attempt` (0-based), capped at max_delay"""
    delay = min(initial_delay * (exponential_base**attempt), max_delay)
    if jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay = min(max_delay, max(0.0, delay + random.uniform(-jitter_amount, jitter_amount)))
    return delay


def retry_operation(
    operation: Callable[[], T],
    max_attempts: int = 10,
    initial_delay: float = 0.2,
    max_delay: float = 5.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    operation_name: str = "operation",
    deadline: Optional[Deadline] = None,
) -> T:
    """Retry an operation with exponential backoff

    Args:
        operation: Callable to retry
        max_attempts: Maximum number of attempts, including the first one
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay between attempts
        exponential_base: Base for exponential backoff
        jitter: Add random jitter
        operation_name: Name for logging purposes
        deadline: Overall time budget; TokenExchangeTimeoutError once spent

    Returns:
        Result of operation

    Raises:
        The last error of the operation, or TokenExchangeTimeoutError
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    attempt = 0
    while True:
        if deadline is not None:
            deadline.check()
        try:
            result = operation()
            if attempt > 0:
                logger.info(f"{operation_name} succeeded on attempt {attempt + 1}")
            return result
        except Exception as e:
            is_retryable, error_type = is_retryable_error(e)

            if not is_retryable:
                logger.debug(f"{operation_name} failed with non-retryable error ({error_type.value}): {e}")
                raise

            if attempt + 1 >= max_attempts:
                logger.warning(f"{operation_name} failed after {max_attempts} attempts: {e}")
                raise

            delay = backoff_delay(attempt, initial_delay, max_delay, exponential_base, jitter)
            if deadline is not None:
                if deadline.remaining() <= delay:
                    logger.warning(f"{operation_name} ran out of time after {attempt + 1} attempts: {e}")
                    raise TokenExchangeTimeoutError(deadline.operation, deadline.timeout) from e

            logger.info(
                f"{operation_name} failed on attempt {attempt + 1}/{max_attempts} "
                f"({error_type.value} error). Retrying in {delay:.2f}s..."
            )
            time.sleep(delay)
            attempt += 1
