"""Error conversion for logs and client-facing responses.

Errors reaching a handler are Python exceptions, error mappings carrying
``name``, ``message`` and ``stack``, or arbitrary values (dicts from
downstream services, strings, ...). ``convert_error`` tags which one it
got and renders two views of it: a log view that keeps the stack and a
response view that never exposes it.
"""

__all__ = [
    "NO_STACK_PROVIDED",
    "ErrorKind",
    "ERROR_OBJECT_FIELDS",
    "ErrorDetails",
    "ConvertedError",
    "convert_error",
    "error_context",
]

import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional

from aibs_informatics_core.utils.json import JSON

NO_STACK_PROVIDED = "No stack provided"


class ErrorKind(Enum):
    EXCEPTION = "exception"
    ERROR_OBJECT = "error_object"
    OBJECT = "object"


ERROR_OBJECT_FIELDS = ("name", "message", "stack")


@dataclass(frozen=True)
class ErrorDetails:
    """Tagged description of an error value.

    Attributes:
        kind: Whether the value was an exception, an error mapping (non-empty
            ``name``, ``message`` and ``stack``) or some other object.
        name: Error name. None for objects.
        message: Error message. None for objects.
        stack: Formatted traceback or the mapping's stack. None for objects.
        value: The original value.
    """

    kind: ErrorKind
    value: Any
    name: Optional[str] = None
    message: Optional[str] = None
    stack: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> "ErrorDetails":
        if isinstance(value, BaseException):
            if value.__traceback__ is not None:
                stack = "".join(
                    traceback.format_exception(type(value), value, value.__traceback__)
                )
            else:
                stack = NO_STACK_PROVIDED
            return cls(
                kind=ErrorKind.EXCEPTION,
                value=value,
                name=type(value).__name__,
                message=str(value),
                stack=stack,
            )
        if isinstance(value, Mapping) and all(value.get(f) for f in ERROR_OBJECT_FIELDS):
            return cls(
                kind=ErrorKind.ERROR_OBJECT,
                value=value,
                name=str(value["name"]),
                message=str(value["message"]),
                stack=str(value["stack"]),
            )
        return cls(kind=ErrorKind.OBJECT, value={} if value is None else value)

    def to_log(self) -> JSON:
        if self.kind == ErrorKind.EXCEPTION:
            return {"name": self.name, "message": self.message, "stack": self.stack}
        if self.kind == ErrorKind.ERROR_OBJECT:
            return dict(self.value)
        return self.value

    def to_response(self) -> JSON:
        if self.kind == ErrorKind.EXCEPTION:
            return {"name": self.name, "message": self.message}
        if isinstance(self.value, Mapping):
            return {k: v for k, v in self.value.items() if k != "stack"}
        return self.value


class ConvertedError(NamedTuple):
    logger: JSON
    response: JSON


def convert_error(value: Any) -> ConvertedError:
    """Render an error value for logging and for a client response.

    Args:
        value (Any): an exception or any JSON-like value

    Returns:
        ConvertedError: ``logger`` view (with stack for exceptions and error
            mappings) and ``response`` view (never with stack)
    """
    details = ErrorDetails.from_value(value)
    return ConvertedError(logger=details.to_log(), response=details.to_response())


def error_context(value: Any) -> Dict[str, Any]:
    """Log ``extra`` payload for an error."""
    return {"error": convert_error(value).logger}
