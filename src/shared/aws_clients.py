"""Object storage client construction.

The worker talks to S3 or an S3-compatible service (such as DigitalOcean
Spaces). Clients are built from the Settings instance and cached, since boto3
clients are thread-safe and expensive to create.
"""

from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config

from .config import Settings

# Storage client configuration with retry
AWS_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",
    },
    connect_timeout=5,
    read_timeout=60,
    signature_version="s3v4",
)

# Custom endpoints generally do not support virtual-hosted addressing
CUSTOM_ENDPOINT_CONFIG = AWS_CONFIG.merge(Config(s3={"addressing_style": "path"}))


@lru_cache(maxsize=4)
def get_s3_client(settings: Settings) -> Any:
    """Get cached S3 client for the given settings.

    Args:
        settings: Worker settings (hashable, frozen)

    Returns:
        boto3 S3 client
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.aws_region,
    )

    if settings.s3_endpoint_url:
        return session.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            config=CUSTOM_ENDPOINT_CONFIG,
        )

    return session.client("s3", config=AWS_CONFIG)


def clear_client_cache() -> None:
    """Clear cached clients.

    Useful for testing when mocking needs to be reset.
    """
    get_s3_client.cache_clear()
