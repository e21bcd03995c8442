"""Aggregated bulk operations on a role's child objects.

Attaching several managed policies or putting several inline policies are
independent calls: one failing must not stop the others. The processor
runs every item, logs each failure and reports them all together.

Items are processed sequentially; the role's IAM calls never run
concurrently with one another.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Sequence, TypeVar

from rolesync.exceptions import AggregateError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchResult(Generic[T]):
    """Result of a bulk operation.

    Attributes:
        successful: Items that were processed
        failed: Items whose operation raised
        errors: Error message per failed item label
    """

    successful: List[T] = field(default_factory=list)
    failed: List[T] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def raise_for_errors(self) -> None:
        """Raise one AggregateError describing every failure, if any."""
        if self.errors:
            raise AggregateError(list(self.errors.values()))


class BatchProcessor:
    """Apply one operation to many items, continuing past failures."""

    def __init__(self, description: str):
        """
        Args:
            description: Verb phrase used in error messages, for example
                "attaching managed policy".
        """
        self.description = description

    def process(
        self,
        items: Sequence[T],
        operation: Callable[[T], None],
        label: Callable[[T], str] = str,
    ) -> BatchResult[T]:
        """Run operation for every item and collect failures.

        Args:
            items: Items to process, in order
            operation: Called once per item; raising marks the item failed
            label: Names an item in log and error messages

        Returns:
            BatchResult with successful and failed items
        """
        result: BatchResult[T] = BatchResult()

        if not items:
            logger.debug(f"Nothing to do for {self.description}")
            return result

        for item in items:
            name = label(item)
            try:
                operation(item)
            except Exception as e:
                message = f"{self.description} ({name}): {e}"
                logger.error(message)
                result.failed.append(item)
                result.errors[name] = message
            else:
                result.successful.append(item)

        logger.debug(
            f"{self.description}: {len(result.successful)} succeeded, "
            f"{len(result.failed)} failed"
        )
        return result

    def run(
        self,
        items: Sequence[T],
        operation: Callable[[T], None],
        label: Callable[[T], str] = str,
    ) -> List[T]:
        """Process every item, then raise AggregateError if any failed."""
        result = self.process(items, operation, label)
        result.raise_for_errors()
        return result.successful
