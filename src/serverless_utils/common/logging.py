"""Logging utilities for AWS Lambda functions.

Provides a logging mixin and helper functions for configuring
structured logging with AWS Lambda Powertools.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from aibs_informatics_core.utils.logging import get_all_handlers
from aws_lambda_powertools.logging import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

from serverless_utils.common.config import ServiceConfig


class LoggingMixins:
    """Mixin class providing structured logging capabilities.

    Attributes:
        log: Alias for the logger property.
        logger: The AWS Lambda Powertools Logger instance.
    """

    @property
    def log(self) -> Logger:
        return self.logger

    @log.setter
    def log(self, value: Logger):
        self.logger = value

    @property
    def logger(self) -> Logger:
        """Get the Logger instance, creating one if needed.

        Returns:
            The configured Logger instance for this object.
        """
        try:
            return self._logger
        except AttributeError:
            self.logger = self.get_logger(self.service_name())
        return self.logger

    @logger.setter
    def logger(self, value: Logger):
        self._logger = value

    @classmethod
    def service_name(cls) -> str:
        return ServiceConfig.from_env().service_name

    @classmethod
    def get_logger(cls, service: Optional[str] = None, add_to_root: bool = False) -> Logger:
        """Create a new Logger instance.

        Args:
            service (Optional[str]): The service name for the logger. If None, uses default.
            add_to_root (bool): Whether to add the logger handler to the root logger.

        Returns:
            A configured Logger instance.
        """
        return get_service_logger(service=service, add_to_root=add_to_root)


def get_service_logger(
    service: Optional[str] = None, child: bool = False, add_to_root: bool = False
) -> Logger:
    """Create a service logger with optional root logger integration.

    The log level is taken from ``LOG_LEVEL`` and the service name from
    ``POWERTOOLS_SERVICE_NAME`` when ``service`` is not given.

    Args:
        service (Optional[str]): The service name for the logger. If None, uses default.
        child (bool): Whether to create a child logger.
        add_to_root (bool): Whether to add the logger handler to the root logger.

    Returns:
        A configured Logger instance for the service.
    """
    config = ServiceConfig.from_env()
    service_logger = Logger(
        service=service or config.service_name, level=config.log_level, child=child
    )
    if add_to_root:
        add_handler_to_logger(service_logger)
    return service_logger


def add_handler_to_logger(
    source_logger: Logger, target_logger: Union[str, logging.Logger, None] = None
):
    """Add a source logger's handler to a target logger.

    Args:
        source_logger (Logger): The Logger whose handler will be copied.
        target_logger (Union[str, logging.Logger, None]): The target logger to receive the handler.
            Can be a logger name string, a Logger instance, or None
            for the root logger.
    """
    handler = source_logger.registered_handler

    if target_logger is None or isinstance(target_logger, str):
        target_logger = logging.getLogger(target_logger)
        log_level = min(source_logger.log_level, target_logger.getEffectiveLevel())
        target_logger.setLevel(log_level)
    target_logger_handlers = get_all_handlers(target_logger)

    if handler not in target_logger_handlers:
        target_logger.addHandler(handler)


def initialize_context(
    logger: Logger,
    event: Optional[Mapping[str, Any]] = None,
    context: Optional[LambdaContext] = None,
):
    """Attach invocation metadata to every subsequent log record.

    Appends ``request_id``, ``function_name`` and ``request_time`` keys. The
    request time is the API Gateway request time when the event carries one,
    otherwise the current time, in epoch milliseconds.

    When the event comes from API Gateway, the request context and payload
    are logged once under "Request Context".

    Args:
        logger (Logger): logger to enrich
        event (Optional[Mapping[str, Any]]): the Lambda event
        context (Optional[LambdaContext]): the Lambda context
    """
    request_context = (event or {}).get("requestContext")
    request_time = (request_context or {}).get("requestTimeEpoch") or int(
        datetime.now(timezone.utc).timestamp() * 1000
    )
    logger.append_keys(
        request_id=getattr(context, "aws_request_id", None),
        function_name=getattr(context, "function_name", None),
        request_time=request_time,
    )

    if request_context and event is not None:
        logger.info(
            "Request Context",
            extra={
                "identity": request_context,
                "payload": {
                    "queryStringParameters": event.get("queryStringParameters"),
                    "pathParameters": event.get("pathParameters"),
                    "body": event.get("body"),
                },
            },
        )
