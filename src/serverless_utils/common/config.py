"""Environment configuration for Lambda functions.

Values are read from the process environment. Lambda sets ``AWS_REGION``
itself; ``LOG_LEVEL`` and ``POWERTOOLS_SERVICE_NAME`` are set by the
deployment. Only the AWS clients need a region, so the fallback lookup
runs in :meth:`ServiceConfig.resolve_region` and never while building
loggers.
"""

__all__ = [
    "AWS_REGION_KEY",
    "LOG_LEVEL_KEY",
    "SERVICE_NAME_KEY",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_SERVICE_NAME",
    "ServiceConfig",
]

from dataclasses import dataclass
from typing import Optional

from aibs_informatics_aws_utils.core import get_region
from aibs_informatics_core.utils.os_operations import get_env_var

AWS_REGION_KEY = "AWS_REGION"
LOG_LEVEL_KEY = "LOG_LEVEL"
SERVICE_NAME_KEY = "POWERTOOLS_SERVICE_NAME"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SERVICE_NAME = "serverless-utils"


@dataclass(frozen=True)
class ServiceConfig:
    """Process level settings.

    Attributes:
        region: ``AWS_REGION`` as set in the environment, if any.
        log_level: Level name for the service logger.
        service_name: Service name attached to every log record.
    """

    region: Optional[str]
    log_level: str = DEFAULT_LOG_LEVEL
    service_name: str = DEFAULT_SERVICE_NAME

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build the configuration from environment variables.

        Returns:
            ServiceConfig: settings resolved from the environment
        """
        return cls(
            region=get_env_var(AWS_REGION_KEY),
            log_level=get_env_var(LOG_LEVEL_KEY, default_value=DEFAULT_LOG_LEVEL).upper(),
            service_name=get_env_var(SERVICE_NAME_KEY, default_value=DEFAULT_SERVICE_NAME),
        )

    def resolve_region(self) -> str:
        """Region for AWS clients.

        Falls back to the default region lookup (other region variables, then
        the boto3 session) when ``AWS_REGION`` is not set. The lookup's error
        propagates when no region is configured anywhere.
        """
        return self.region or get_region()
