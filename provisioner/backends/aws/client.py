"""EC2 client seam for the AWS backend.

``AWSProvider`` only needs the four calls below, so tests can hand it any
object that implements them instead of a real boto3 client.
"""

from __future__ import annotations

from typing import Any, Protocol

import boto3
from botocore.config import Config

from provisioner.shared import config


class EC2Client(Protocol):
    def describe_regions(self, **kwargs: Any) -> dict: ...

    def run_instances(self, **kwargs: Any) -> dict: ...

    def describe_instances(self, **kwargs: Any) -> dict: ...

    def terminate_instances(self, **kwargs: Any) -> dict: ...


def build_ec2_client(
    access_key: str,
    secret_key: str,
    region: str,
    endpoint_url: str | None = None,
) -> EC2Client:
    """Build a boto3 EC2 client with static credentials."""
    kwargs = {}
    endpoint_url = endpoint_url or config.AWS_ENDPOINT_URL()
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url

    client_config = Config(
        connect_timeout=config.AWS_CONNECT_TIMEOUT(),
        read_timeout=config.AWS_READ_TIMEOUT(),
        retries={"max_attempts": config.AWS_MAX_ATTEMPTS(), "mode": "standard"},
    )
    return boto3.client(
        "ec2",
        region_name=region,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        config=client_config,
        **kwargs,
    )
