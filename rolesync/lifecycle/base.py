"""Shared plumbing for components that call IAM."""

from typing import Any, List, Optional

from rolesync.utils.aws_client import RetryStrategy, iter_pages
from rolesync.utils.logging import LifecycleLogger


class IAMComponent:
    """Base for classes issuing IAM calls on behalf of one role.

    Every call goes through the retry strategy so throttling is absorbed
    uniformly, and is recorded on the lifecycle logger at DEBUG level.
    """

    def __init__(
        self,
        iam_client: Any,
        retry_strategy: Optional[RetryStrategy] = None,
        lifecycle_logger: Optional[LifecycleLogger] = None,
    ):
        self.iam = iam_client
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.lifecycle_logger = lifecycle_logger or LifecycleLogger()

    def _call(self, api_name: str, method_name: str, role_name: str, **kwargs: Any) -> Any:
        """Call iam.<method_name>(**kwargs) with throttling retries."""
        self.lifecycle_logger.log_api_call(api_name, role_name, kwargs)
        method = getattr(self.iam, method_name)
        return self.retry_strategy.execute_with_retry(method, **kwargs)

    def _paginate(
        self, api_name: str, operation_name: str, result_key: str, role_name: str, **kwargs: Any
    ) -> List[Any]:
        """Collect every page of a list call with throttling retries.

        A throttled page restarts the listing from the first page.
        """
        self.lifecycle_logger.log_api_call(api_name, role_name, kwargs)
        return self.retry_strategy.execute_with_retry(
            lambda: list(iter_pages(self.iam, operation_name, result_key, **kwargs))
        )
