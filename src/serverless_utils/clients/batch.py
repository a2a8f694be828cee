"""Batched writes to a single DynamoDB table.

``BatchWriteItem`` accepts at most 25 requests per call. Items are
partitioned into contiguous batches of that size and all batches are sent
concurrently. Batches are independent: there is no atomicity across them
and one failing batch does not stop the others.

Example:
    ```python
    batch_write_item("my-table", "put", [{"pk": "a"}, {"pk": "b"}])
    ```
"""

__all__ = [
    "MAX_BATCH_SIZE",
    "WriteAction",
    "PutRequest",
    "DeleteRequest",
    "WriteOperation",
    "BatchWriteResult",
    "BatchWriteError",
    "to_write_operations",
    "partition",
    "dispatch_batches",
    "batch_write_items",
    "batch_write_item",
]

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from aibs_informatics_core.exceptions import ApplicationException
from aws_lambda_powertools.logging import Logger

from serverless_utils.common.errors import error_context
from serverless_utils.common.logging import get_service_logger

if TYPE_CHECKING:  # pragma: no cover
    from serverless_utils.clients.dynamodb import DynamoDBDocumentClient

logger = get_service_logger(__name__)

MAX_BATCH_SIZE = 25


class WriteAction(Enum):
    PUT = "put"
    DELETE = "delete"


@dataclass(frozen=True)
class PutRequest:
    """Create or replace a full item."""

    item: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "item", MappingProxyType(dict(self.item)))

    def to_request(self) -> Dict[str, Any]:
        return {"PutRequest": {"Item": dict(self.item)}}


@dataclass(frozen=True)
class DeleteRequest:
    """Delete an item by primary key."""

    key: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "key", MappingProxyType(dict(self.key)))

    def to_request(self) -> Dict[str, Any]:
        return {"DeleteRequest": {"Key": dict(self.key)}}


WriteOperation = Union[PutRequest, DeleteRequest]

# Sends one batch of native (unmarshalled) write requests for a table.
BatchSender = Callable[[str, List[Dict[str, Any]]], Dict[str, Any]]


@dataclass
class BatchWriteResult:
    """Outcome of one ``BatchWriteItem`` call.

    Attributes:
        batch_index: Zero based position of the batch.
        batch_count: Total number of batches in the write.
        operations: Operations sent in this batch.
        response: Raw service response when the call succeeded.
        error: Exception raised by the call when it failed.
    """

    batch_index: int
    batch_count: int
    operations: Sequence[WriteOperation]
    response: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def unprocessed_items(self) -> Dict[str, Any]:
        return (self.response or {}).get("UnprocessedItems") or {}


class BatchWriteError(ApplicationException):
    """Raised when at least one batch of a batch write failed.

    Carries the result of every batch, successful or not, so that callers
    can tell which operations were applied.
    """

    def __init__(self, table_name: str, results: Sequence[BatchWriteResult]):
        self.table_name = table_name
        self.results = list(results)
        super().__init__(
            f"{len(self.failures)} of {len(self.results)} batch writes to "
            f"{table_name} failed"
        )

    @property
    def failures(self) -> List[BatchWriteResult]:
        return [result for result in self.results if not result.succeeded]


def to_write_operations(
    action: Union[WriteAction, str], items: Sequence[Mapping[str, Any]]
) -> List[WriteOperation]:
    """Tag every item with the requested write action.

    Args:
        action (Union[WriteAction, str]): "put" for full items, "delete" for keys
        items (Sequence[Mapping[str, Any]]): items or keys, in order

    Raises:
        ValueError: if the action is unknown

    Returns:
        List[WriteOperation]: one operation per item, in input order
    """
    action = WriteAction(action)
    if action == WriteAction.PUT:
        return [PutRequest(item=item) for item in items]
    return [DeleteRequest(key=key) for key in items]


def partition(
    operations: Sequence[WriteOperation], size: int = MAX_BATCH_SIZE
) -> List[List[WriteOperation]]:
    """Split operations into contiguous batches of at most ``size``.

    Args:
        operations (Sequence[WriteOperation]): operations in order
        size (int): batch size. Defaults to MAX_BATCH_SIZE.

    Raises:
        ValueError: if size is not between 1 and MAX_BATCH_SIZE

    Returns:
        List[List[WriteOperation]]: batches; only the last one may be short
    """
    if not 1 <= size <= MAX_BATCH_SIZE:
        raise ValueError(f"Batch size must be between 1 and {MAX_BATCH_SIZE}, got {size}")
    return [list(operations[i : i + size]) for i in range(0, len(operations), size)]


async def dispatch_batches(
    table_name: str,
    batches: Sequence[Sequence[WriteOperation]],
    send: BatchSender,
    logger: Logger = logger,
) -> List[BatchWriteResult]:
    """Send all batches concurrently and wait for every one of them.

    ``send`` is a blocking call. Each dispatch gets its own thread pool with
    one worker per batch, so every request is in flight at once regardless of
    the size of the event loop's default executor. Nothing is cancelled when
    a batch fails.

    Args:
        table_name (str): target table
        batches (Sequence[Sequence[WriteOperation]]): batches to send
        send (BatchSender): performs one BatchWriteItem call
        logger (Logger): receives one record per batch

    Raises:
        BatchWriteError: if any batch failed

    Returns:
        List[BatchWriteResult]: results in batch order
    """
    batch_count = len(batches)
    if batch_count == 0:
        return []

    loop = asyncio.get_running_loop()

    async def _write(batch_index: int, batch: Sequence[WriteOperation]) -> BatchWriteResult:
        request_items = [operation.to_request() for operation in batch]
        log_context = {
            "table_name": table_name,
            "batch_number": f"{batch_index + 1} out of {batch_count}",
            "batch_index": batch_index,
            "batch_count": batch_count,
            "input": request_items,
        }
        try:
            response = await loop.run_in_executor(
                executor, functools.partial(send, table_name, request_items)
            )
        except Exception as e:
            logger.error("Fail to batch_write", extra={**log_context, **error_context(e)})
            return BatchWriteResult(batch_index, batch_count, batch, error=e)

        logger.info("Complete batch_write", extra={**log_context, "command_response": response})
        return BatchWriteResult(batch_index, batch_count, batch, response=response)

    with ThreadPoolExecutor(max_workers=batch_count, thread_name_prefix="batch_write") as executor:
        results = await asyncio.gather(
            *(_write(i, batch) for i, batch in enumerate(batches))
        )

    failures = [result for result in results if not result.succeeded]
    if failures:
        raise BatchWriteError(table_name, results) from failures[0].error
    return list(results)


async def batch_write_items(
    table_name: str,
    action: Union[WriteAction, str],
    items: Sequence[Mapping[str, Any]],
    client: Optional["DynamoDBDocumentClient"] = None,
    logger: Logger = logger,
) -> List[BatchWriteResult]:
    """Put or delete many items in one table.

    This cannot update items: a put on an existing key replaces the whole
    item. Use ``update_item`` for partial updates.

    Args:
        table_name (str): target table
        action (Union[WriteAction, str]): "put" or "delete"
        items (Sequence[Mapping[str, Any]]): full items for put, keys for delete
        client (Optional[DynamoDBDocumentClient]): document client. Defaults to the
            process wide client.
        logger (Logger): receives one record per batch

    Raises:
        ValueError: if the table name is empty or the action is unknown
        BatchWriteError: if any batch failed

    Returns:
        List[BatchWriteResult]: results in batch order
    """
    if not table_name:
        raise ValueError("A table name is required for a batch write")

    operations = to_write_operations(action, items)
    batches = partition(operations)
    if not batches:
        return []

    if client is None:
        from serverless_utils.clients.dynamodb import get_document_client

        client = get_document_client()

    logger.debug(
        f"Writing {len(operations)} items to {table_name} in {len(batches)} batches "
        f"(action={WriteAction(action).value})"
    )
    try:
        return await dispatch_batches(
            table_name, batches, send=client.send_batch_write, logger=logger
        )
    except BatchWriteError as e:
        logger.error(
            "Fail to batch_write_item",
            extra={"action": WriteAction(action).value, "items": list(items), **error_context(e)},
        )
        raise


def batch_write_item(
    table_name: str,
    action: Union[WriteAction, str],
    items: Sequence[Mapping[str, Any]],
    client: Optional["DynamoDBDocumentClient"] = None,
    logger: Logger = logger,
) -> List[BatchWriteResult]:
    """Blocking entry point for :func:`batch_write_items`.

    Runs its own event loop, so it must not be called from a coroutine.
    """
    return asyncio.run(
        batch_write_items(table_name, action, items, client=client, logger=logger)
    )


