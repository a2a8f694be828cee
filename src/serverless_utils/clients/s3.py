"""S3 presigned URLs."""

__all__ = [
    "DEFAULT_EXPIRES_IN",
    "get_s3_client",
    "get_signed_url",
]

import functools
from typing import Optional

import boto3
from botocore.client import BaseClient

from serverless_utils.common.config import ServiceConfig
from serverless_utils.common.logging import get_service_logger

logger = get_service_logger(__name__)

DEFAULT_EXPIRES_IN = 3600


@functools.lru_cache(maxsize=None)
def get_s3_client() -> BaseClient:
    return boto3.client("s3", region_name=ServiceConfig.from_env().resolve_region())


def get_signed_url(
    bucket: str,
    key: str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    client: Optional[BaseClient] = None,
) -> str:
    """Create a presigned URL to download an object.

    Signing happens locally; no request is made to S3.

    Args:
        bucket (str): bucket name
        key (str): object key
        expires_in (int): lifetime of the URL in seconds. Defaults to one hour.
        client (Optional[BaseClient]): S3 client. Defaults to the process wide client.

    Raises:
        ValueError: if bucket or key is empty, or expires_in is not positive

    Returns:
        str: the presigned URL
    """
    if not bucket or not key:
        raise ValueError(f"Both bucket and key are required (bucket={bucket!r}, key={key!r})")
    if expires_in <= 0:
        raise ValueError(f"expires_in must be positive, got {expires_in}")

    s3 = client or get_s3_client()
    url = s3.generate_presigned_url(
        "get_object", Params={"Bucket": bucket, "Key": key}, ExpiresIn=expires_in
    )
    logger.debug(f"Generated presigned url for s3://{bucket}/{key} (expires in {expires_in}s)")
    return url
