"""API Gateway proxy responses.

Standard success and error envelopes returned by Lambda functions invoked
through API Gateway. The request id is echoed in the body so that clients
can quote it when searching CloudWatch.
"""

__all__ = [
    "CORS_HEADERS",
    "resolve_request_id",
    "ok_response",
    "err_response",
]

import json
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from aibs_informatics_core.utils.json import JSON
from aws_lambda_powertools.utilities.typing import LambdaContext

from serverless_utils.common.errors import convert_error
from serverless_utils.common.logging import get_service_logger

logger = get_service_logger(__name__)

CORS_HEADERS: Dict[str, Union[str, bool]] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": True,
}

APIGatewayProxyResult = Dict[str, Any]


def resolve_request_id(context: Union[LambdaContext, str, None]) -> Optional[str]:
    """Resolve the request id from a Lambda context or a caller supplied id.

    Args:
        context (Union[LambdaContext, str, None]): Lambda context, request id or None

    Returns:
        Optional[str]: the request id, if any
    """
    if context is None:
        return None
    if isinstance(context, str):
        return context
    return getattr(context, "aws_request_id", None) or None


def ok_response(
    message: str,
    context: Union[LambdaContext, str, None] = None,
    data: Optional[JSON] = None,
    status_code: int = 200,
) -> APIGatewayProxyResult:
    """Build a success response.

    Example:
        ```python
        return ok_response("Success", context, {"key": "value"})
        ```

    Args:
        message (str): message for the client
        context (Union[LambdaContext, str, None]): Lambda context or request id
        data (Optional[JSON]): payload. Defaults to an empty object.
        status_code (int): HTTP status code. Defaults to 200.

    Returns:
        APIGatewayProxyResult: the proxy integration response
    """
    request_id = resolve_request_id(context)
    data = {} if data is None else data

    logger.info(message, extra={"request_id": request_id, "data": data})

    return _build_response(
        status_code,
        {
            "request_id": request_id,
            "status_code": status_code,
            "message": message,
            "data": data,
        },
    )


def err_response(
    status_code: int,
    message: str,
    context: Union[LambdaContext, str, None] = None,
    error: Any = None,
) -> APIGatewayProxyResult:
    """Build an error response.

    Exceptions are reduced to their name and message in the body. The
    traceback is only written to the log.

    Example:
        ```python
        return err_response(400, "Bad Request", context, ValueError("Invalid input"))
        return err_response(500, "Server Error", context, {"code": 500})
        return err_response(404, "Not Found")
        ```

    Args:
        status_code (int): HTTP status code
        message (str): message for the client
        context (Union[LambdaContext, str, None]): Lambda context or request id
        error (Any): exception or error payload. Defaults to an empty object.

    Returns:
        APIGatewayProxyResult: the proxy integration response
    """
    request_id = resolve_request_id(context)
    converted = convert_error(error)

    logger.error(message, extra={"request_id": request_id, "error": converted.logger})

    return _build_response(
        status_code,
        {
            "request_id": request_id,
            "status_code": status_code,
            "message": message,
            "error": converted.response,
        },
    )


def _build_response(status_code: int, body: Dict[str, Any]) -> APIGatewayProxyResult:
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(body, default=_json_default),
    }


def _json_default(obj: Any) -> Any:
    # DynamoDB numbers come back as Decimal
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)
