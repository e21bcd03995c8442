"""AWS client management for rolesync."""

import logging
import random
import time
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def error_code(error: Exception) -> str:
    """Return the AWS error code of a ClientError, or an empty string."""
    if isinstance(error, ClientError):
        return str(error.response.get("Error", {}).get("Code", ""))
    return ""


def error_message(error: Exception) -> str:
    """Return the AWS error message of a ClientError, or an empty string."""
    if isinstance(error, ClientError):
        return str(error.response.get("Error", {}).get("Message", ""))
    return ""


def is_aws_error(error: Exception, code: str, message_fragment: str = "") -> bool:
    """Check whether an exception carries the given AWS error code.

    When message_fragment is given, the error message must also contain it.
    """
    if error_code(error) != code:
        return False
    return not message_fragment or message_fragment in error_message(error)


class RetryStrategy:
    """Retry strategy with exponential backoff and jitter."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        jitter: bool = True,
    ):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def execute_with_retry(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute operation with exponential backoff retry."""
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                return operation(*args, **kwargs)
            except ClientError as e:
                last_exception = e
                code = error_code(e)

                if self._is_retryable_error(code) and attempt < self.max_retries:
                    delay = self._calculate_delay(attempt)
                    logger.warning(
                        f"Retryable error {code}, attempt {attempt + 1}/{self.max_retries + 1}, "
                        f"waiting {delay:.2f}s"
                    )
                    time.sleep(delay)
                else:
                    raise

        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected retry loop exit")

    def _is_retryable_error(self, error_code: str) -> bool:
        """Check if error is retryable."""
        retryable_codes = {
            "Throttling",
            "ThrottlingException",
            "RequestLimitExceeded",
            "ServiceUnavailable",
            "InternalError",
            "RequestTimeout",
        }
        return error_code in retryable_codes

    def _calculate_delay(self, attempt: int) -> float:
        """Calculate delay with exponential backoff and optional jitter."""
        delay: float = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay


def retry_for_duration(
    operation: Callable[[], T],
    is_retryable: Callable[[Exception], bool],
    timeout: float,
    min_delay: float = 0.5,
    max_delay: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Keep calling operation while it fails with a retryable error.

    Retryable errors are retried with exponential backoff until timeout
    seconds have elapsed. Once the window is exhausted one final attempt is
    made and its outcome, success or error, is returned to the caller.
    Non-retryable errors propagate immediately.
    """
    deadline = clock() + timeout
    delay = min_delay
    attempt = 0

    while True:
        attempt += 1
        try:
            return operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            remaining = deadline - clock()
            if remaining <= 0:
                break
            wait = min(delay, max_delay, remaining)
            logger.info(
                f"Retryable error {error_code(e) or type(e).__name__} on attempt {attempt}, "
                f"retrying in {wait:.2f}s"
            )
            sleep(wait)
            delay *= 2

    logger.warning(f"Retry window of {timeout}s exhausted, making final attempt")
    return operation()


def iter_pages(client: Any, operation_name: str, result_key: str, **kwargs: Any) -> Iterable[Any]:
    """Yield every item under result_key across all pages of a paginated call."""
    paginator = client.get_paginator(operation_name)
    for page in paginator.paginate(**kwargs):
        yield from page.get(result_key, [])


class AWSClientManager:
    """Manages AWS boto3 clients with optional role assumption."""

    def __init__(
        self,
        region: str = "us-east-1",
        role_arn: str | None = None,
        retry_strategy: RetryStrategy | None = None,
    ):
        self.region = region
        self.role_arn = role_arn
        self.retry_strategy = retry_strategy or RetryStrategy()
        self._session: boto3.Session | None = None
        self._clients: dict[str, Any] = {}

    def _get_session(self) -> boto3.Session:
        """Get or create boto3 session, with role assumption if configured."""
        if self._session is not None:
            return self._session

        if self.role_arn:
            sts_client = boto3.client("sts", region_name=self.region)
            response = sts_client.assume_role(
                RoleArn=self.role_arn,
                RoleSessionName="Rolesync",
                DurationSeconds=3600,
            )
            credentials = response["Credentials"]
            self._session = boto3.Session(
                aws_access_key_id=credentials["AccessKeyId"],
                aws_secret_access_key=credentials["SecretAccessKey"],
                aws_session_token=credentials["SessionToken"],
                region_name=self.region,
            )
        else:
            self._session = boto3.Session(region_name=self.region)

        return self._session

    def get_client(self, service_name: str) -> Any:
        """Get boto3 client for specified service."""
        if service_name not in self._clients:
            session = self._get_session()
            config = Config(retries={"max_attempts": 0})  # RetryStrategy owns retries
            self._clients[service_name] = session.client(
                service_name,
                config=config,
                region_name=self.region,  # type: ignore[call-overload]
            )
        return self._clients[service_name]

    @property
    def iam(self) -> Any:
        """Get IAM client."""
        return self.get_client("iam")

