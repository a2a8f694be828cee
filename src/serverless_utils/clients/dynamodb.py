"""DynamoDB document client.

Works with native Python values instead of DynamoDB attribute values. Inputs
are marshalled with boto3's ``TypeSerializer`` before they are sent and
outputs are unmarshalled with ``TypeDeserializer``, so items read back as
plain dicts (numbers as ``Decimal``). The legacy ``KeyConditions``,
``QueryFilter``, ``ScanFilter``, ``Expected`` and ``AttributeUpdates``
parameters take native values too.

Every operation logs its input and response. Failures are logged with the
input and the converted error and then re-raised unchanged.

Example:
    ```python
    put_item({"TableName": "users", "Item": {"pk": "user#1", "age": 42}})
    get_item({"TableName": "users", "Key": {"pk": "user#1"}})["Item"]
    ```
"""

__all__ = [
    "MAX_POOL_CONNECTIONS",
    "DynamoDBDocumentClient",
    "get_dynamodb_client",
    "get_document_client",
    "put_item",
    "get_item",
    "update_item",
    "delete_item",
    "scan_table",
    "query_items",
    "execute_statement",
    "batch_execute_statement",
    "batch_write_item",
    "batch_write_items",
]

import functools
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.client import BaseClient
from botocore.config import Config

from serverless_utils.clients import batch
from serverless_utils.clients.batch import BatchWriteResult, WriteAction
from serverless_utils.common.config import ServiceConfig
from serverless_utils.common.errors import error_context
from serverless_utils.common.logging import LoggingMixins

CommandInput = Mapping[str, Any]
CommandOutput = Dict[str, Any]

# Room for every concurrent batch of a large batch write
MAX_POOL_CONNECTIONS = 50

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _to_dynamodb_number(value: Any) -> Any:
    # TypeSerializer rejects float
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        return {k: _to_dynamodb_number(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamodb_number(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {_to_dynamodb_number(v) for v in value}
    return value


def marshall(item: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _serializer.serialize(_to_dynamodb_number(v)) for k, v in item.items()}


def unmarshall(item: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _deserializer.deserialize(v) for k, v in item.items()}


LEGACY_CONDITION_PARAMETERS = (
    "KeyConditions",
    "QueryFilter",
    "ScanFilter",
    "Expected",
    "AttributeUpdates",
)


def _marshall_values(values: Sequence[Any]) -> List[Dict[str, Any]]:
    return [_serializer.serialize(_to_dynamodb_number(v)) for v in values]


def _marshall_condition(condition: Mapping[str, Any]) -> Dict[str, Any]:
    # Legacy Condition, ExpectedAttributeValue and AttributeValueUpdate shapes
    marshalled = dict(condition)
    if "Value" in marshalled:
        marshalled["Value"] = _serializer.serialize(_to_dynamodb_number(marshalled["Value"]))
    if marshalled.get("AttributeValueList") is not None:
        marshalled["AttributeValueList"] = _marshall_values(marshalled["AttributeValueList"])
    return marshalled


def _marshall_input(input: CommandInput) -> Dict[str, Any]:
    request = dict(input)
    for key in ("Item", "Key", "ExpressionAttributeValues", "ExclusiveStartKey"):
        if request.get(key) is not None:
            request[key] = marshall(request[key])
    for key in LEGACY_CONDITION_PARAMETERS:
        if request.get(key) is not None:
            request[key] = {
                name: _marshall_condition(condition) for name, condition in request[key].items()
            }
    if request.get("Parameters") is not None:
        request["Parameters"] = _marshall_values(request["Parameters"])
    if request.get("Statements") is not None:
        request["Statements"] = [
            {**statement, "Parameters": _marshall_values(statement["Parameters"])}
            if statement.get("Parameters") is not None
            else dict(statement)
            for statement in request["Statements"]
        ]
    return request


def _unmarshall_output(output: Mapping[str, Any]) -> CommandOutput:
    response = dict(output)
    for key in ("Item", "Attributes", "LastEvaluatedKey"):
        if response.get(key) is not None:
            response[key] = unmarshall(response[key])
    if response.get("Items") is not None:
        response["Items"] = [unmarshall(item) for item in response["Items"]]
    if response.get("Responses") is not None:
        response["Responses"] = [
            {**entry, "Item": unmarshall(entry["Item"])}
            if entry.get("Item") is not None
            else dict(entry)
            for entry in response["Responses"]
        ]
    if response.get("UnprocessedItems"):
        response["UnprocessedItems"] = {
            table_name: [_unmarshall_write_request(request) for request in requests]
            for table_name, requests in response["UnprocessedItems"].items()
        }
    return response


def _marshall_write_request(request: Mapping[str, Any]) -> Dict[str, Any]:
    if "PutRequest" in request:
        return {"PutRequest": {"Item": marshall(request["PutRequest"]["Item"])}}
    return {"DeleteRequest": {"Key": marshall(request["DeleteRequest"]["Key"])}}


def _unmarshall_write_request(request: Mapping[str, Any]) -> Dict[str, Any]:
    if "PutRequest" in request:
        return {"PutRequest": {"Item": unmarshall(request["PutRequest"]["Item"])}}
    return {"DeleteRequest": {"Key": unmarshall(request["DeleteRequest"]["Key"])}}


@dataclass
class DynamoDBDocumentClient(LoggingMixins):
    """Document style wrapper around a low-level boto3 DynamoDB client.

    The boto3 client is thread safe and is shared by every call, including
    the concurrent calls of a batch write.

    Attributes:
        client: The boto3 DynamoDB client.
    """

    client: BaseClient = field(default_factory=lambda: get_dynamodb_client())

    def put_item(self, input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
        """Create an item, or replace an item that has the same primary key.

        See https://docs.aws.amazon.com/amazondynamodb/latest/APIReference/API_PutItem.html
        """
        return self._send("put_item", self.client.put_item, input, action_for)

    def get_item(self, input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
        """Read the item with the given primary key.

        The response has no ``Item`` when nothing matches.
        """
        return self._send("get_item", self.client.get_item, input, action_for)

    def update_item(
        self, input: CommandInput, action_for: Optional[str] = None
    ) -> CommandOutput:
        """Edit an existing item's attributes, or add the item if it does not exist.

        See https://docs.aws.amazon.com/amazondynamodb/latest/APIReference/API_UpdateItem.html
        """
        return self._send("update_item", self.client.update_item, input, action_for)

    def delete_item(
        self, input: CommandInput, action_for: Optional[str] = None
    ) -> CommandOutput:
        """Delete a single item by primary key. Idempotent."""
        return self._send("delete_item", self.client.delete_item, input, action_for)

    def scan_table(self, input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
        """Read every item of a table or secondary index, one page at a time.

        A page stops at 1 MB; continue from ``LastEvaluatedKey`` by passing it
        back as ``ExclusiveStartKey``.
        """
        return self._send("scan_table", self.client.scan, input, action_for)

    def query_items(self, input: CommandInput) -> CommandOutput:
        """Find items by partition key, optionally refined by sort key."""
        return self._send("query_items", self.client.query, input)

    def execute_statement(self, input: CommandInput) -> CommandOutput:
        """Run a single PartiQL read or singleton write."""
        return self._send("execute_statement", self.client.execute_statement, input)

    def batch_execute_statement(self, input: CommandInput) -> CommandOutput:
        """Run a batch of PartiQL statements.

        A successful call does not mean every statement succeeded: check the
        ``Error`` of each entry in ``Responses``.
        """
        return self._send(
            "batch_execute_statement", self.client.batch_execute_statement, input
        )

    def send_batch_write(
        self, table_name: str, requests: List[Dict[str, Any]]
    ) -> CommandOutput:
        """Send one ``BatchWriteItem`` call of at most 25 native write requests."""
        response = self.client.batch_write_item(
            RequestItems={table_name: [_marshall_write_request(r) for r in requests]}
        )
        return _unmarshall_output(response)

    def batch_write_item(
        self,
        table_name: str,
        action: Union[WriteAction, str],
        items: Sequence[Mapping[str, Any]],
    ) -> List[BatchWriteResult]:
        """Put or delete many items in one table, 25 per concurrent call.

        See ``serverless_utils.clients.batch`` for the failure semantics.
        Blocking: runs its own event loop. Use :meth:`batch_write_items` from a
        coroutine.
        """
        return batch.batch_write_item(table_name, action, items, client=self, logger=self.logger)

    async def batch_write_items(
        self,
        table_name: str,
        action: Union[WriteAction, str],
        items: Sequence[Mapping[str, Any]],
    ) -> List[BatchWriteResult]:
        """Coroutine version of :meth:`batch_write_item` for a running event loop."""
        return await batch.batch_write_items(
            table_name, action, items, client=self, logger=self.logger
        )

    def _send(
        self,
        operation: str,
        method: Callable[..., Dict[str, Any]],
        input: CommandInput,
        action_for: Optional[str] = None,
    ) -> CommandOutput:
        try:
            response = _unmarshall_output(method(**_marshall_input(input)))
        except Exception as e:
            self.logger.error(
                f"Fail to {operation}",
                extra={"input": dict(input), "action_for": action_for, **error_context(e)},
            )
            raise

        self.logger.info(
            f"Complete {operation}",
            extra={"input": dict(input), "command_response": response},
        )
        return response


@functools.lru_cache(maxsize=None)
def get_dynamodb_client() -> BaseClient:
    """Process wide boto3 DynamoDB client for the configured region."""
    return boto3.client(
        "dynamodb",
        region_name=ServiceConfig.from_env().resolve_region(),
        config=Config(max_pool_connections=MAX_POOL_CONNECTIONS),
    )


@functools.lru_cache(maxsize=None)
def get_document_client() -> DynamoDBDocumentClient:
    """Process wide document client. Reused across warm invocations."""
    return DynamoDBDocumentClient(client=get_dynamodb_client())


def put_item(input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
    return get_document_client().put_item(input, action_for)


def get_item(input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
    return get_document_client().get_item(input, action_for)


def update_item(input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
    return get_document_client().update_item(input, action_for)


def delete_item(input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
    return get_document_client().delete_item(input, action_for)


def scan_table(input: CommandInput, action_for: Optional[str] = None) -> CommandOutput:
    return get_document_client().scan_table(input, action_for)


def query_items(input: CommandInput) -> CommandOutput:
    return get_document_client().query_items(input)


def execute_statement(input: CommandInput) -> CommandOutput:
    return get_document_client().execute_statement(input)


def batch_execute_statement(input: CommandInput) -> CommandOutput:
    return get_document_client().batch_execute_statement(input)


def batch_write_item(
    table_name: str,
    action: Union[WriteAction, str],
    items: Sequence[Mapping[str, Any]],
) -> List[BatchWriteResult]:
    return get_document_client().batch_write_item(table_name, action, items)


async def batch_write_items(
    table_name: str,
    action: Union[WriteAction, str],
    items: Sequence[Mapping[str, Any]],
) -> List[BatchWriteResult]:
    return await get_document_client().batch_write_items(table_name, action, items)
