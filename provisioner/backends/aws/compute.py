"""EC2 provider: launches, inspects and terminates instances."""

from __future__ import annotations

import base64
import logging
import time

from botocore.exceptions import BotoCoreError, ClientError

from provisioner.backends.aws.client import EC2Client, build_ec2_client
from provisioner.core.context import Context, ensure_context
from provisioner.core.errors import (
    AddressAssignmentTimeout,
    BackendError,
    InstanceNotFoundError,
    InvalidCredentialsError,
    OperationCancelled,
    ProviderError,
    ProvisionRequestError,
    QuotaExceededError,
    UnsupportedCombinationError,
)
from provisioner.core.interfaces import (
    ARCH_AMD64,
    ARCH_ARM64,
    SIZE_LARGE,
    SIZE_MEDIUM,
    SIZE_SMALL,
    STATE_PENDING,
    STATE_RUNNING,
    STATE_STOPPED,
    STATE_TERMINATED,
    InstanceSpec,
    InstanceStatus,
)
from provisioner.shared import config

logger = logging.getLogger(__name__)

# size -> architecture -> EC2 instance type
INSTANCE_TYPES = {
    SIZE_SMALL: {
        ARCH_AMD64: "t3.small",
        ARCH_ARM64: "t4g.small",
    },
    SIZE_MEDIUM: {
        ARCH_AMD64: "c5.xlarge",
        ARCH_ARM64: "c6g.xlarge",
    },
    SIZE_LARGE: {
        ARCH_AMD64: "c5.2xlarge",
        ARCH_ARM64: "c6g.2xlarge",
    },
}

# architecture -> Ubuntu 22.04 LTS AMI (us-east-1)
AMIS = {
    ARCH_AMD64: "ami-0c7217cdde317cfec",
    ARCH_ARM64: "ami-0c7a8e3f05e4e5f0c",
}

EC2_STATES = {
    "pending": STATE_PENDING,
    "running": STATE_RUNNING,
    "stopping": STATE_STOPPED,
    "stopped": STATE_STOPPED,
    "shutting-down": STATE_TERMINATED,
    "terminated": STATE_TERMINATED,
}

NAME_TAG = {"Key": "Name", "Value": "stagely-vm"}

NOT_FOUND_CODE = "InvalidInstanceID.NotFound"
QUOTA_CODES = frozenset(
    {
        "InstanceLimitExceeded",
        "VcpuLimitExceeded",
        "InsufficientInstanceCapacity",
        "MaxSpotInstanceCountExceeded",
    }
)


def get_instance_type(size: str, arch: str) -> str:
    arch_map = INSTANCE_TYPES.get(size)
    if arch_map is None:
        raise UnsupportedCombinationError(f"unsupported size: {size}")
    instance_type = arch_map.get(arch)
    if instance_type is None:
        raise UnsupportedCombinationError(
            f"unsupported architecture for size {size}: {arch}"
        )
    return instance_type


def get_ami(arch: str, images: dict[str, str] | None = None) -> str:
    ami = (images or AMIS).get(arch)
    if ami is None:
        raise UnsupportedCombinationError(f"unsupported architecture: {arch}")
    return ami


def map_ec2_state(ec2_state: str) -> str:
    # Unknown states read as pending so nothing looks ready by accident.
    return EC2_STATES.get(ec2_state, STATE_PENDING)


def _error_code(exc: Exception) -> str | None:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


class AWSProvider:
    def __init__(
        self,
        client: EC2Client,
        region: str,
        images: dict[str, str] | None = None,
        poll_interval: float | None = None,
        poll_timeout: float | None = None,
    ):
        self._ec2 = client
        self._region = region
        self._images = dict(images) if images else dict(AMIS)
        self._poll_interval = (
            poll_interval if poll_interval is not None else config.POLL_INTERVAL()
        )
        self._poll_timeout = (
            poll_timeout if poll_timeout is not None else config.POLL_TIMEOUT()
        )

    @classmethod
    def from_credentials(
        cls,
        access_key: str,
        secret_key: str,
        region: str,
        endpoint_url: str | None = None,
        **kwargs,
    ) -> AWSProvider:
        """Build a provider backed by a real boto3 EC2 client."""
        if not access_key:
            raise ValueError("access key is required")
        if not secret_key:
            raise ValueError("secret key is required")
        if not region:
            raise ValueError("region is required")

        client = build_ec2_client(access_key, secret_key, region, endpoint_url)
        return cls(client, region, **kwargs)

    @property
    def region(self) -> str:
        return self._region

    def name(self) -> str:
        return "aws"

    def validate_credentials(self, ctx: Context | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.check()
        try:
            self._ec2.describe_regions()
        except Exception as exc:
            # Any failure reads as unusable credentials.
            logger.debug("describe_regions failed: %s", exc)
            raise InvalidCredentialsError(self.name()) from exc

    def create_instance(
        self, spec: InstanceSpec, ctx: Context | None = None
    ) -> tuple[str, str]:
        """Launch one EC2 instance and wait for its public IP.

        Returns (instance_id, public_ip). On timeout or cancellation the
        raised error still carries ``instance_id`` so the caller can
        terminate the instance instead of leaking it.
        """
        ctx = ensure_context(ctx)
        spec.validate()
        instance_type = get_instance_type(spec.size, spec.architecture)
        ami = get_ami(spec.architecture, self._images)
        ctx.check()

        request = self._build_run_request(spec, instance_type, ami)
        logger.info(
            "Launching %s instance (%s, %s) in %s%s",
            instance_type,
            spec.size,
            spec.architecture,
            spec.region,
            " as spot" if spec.spot_instance else "",
        )
        try:
            resp = self._ec2.run_instances(**request)
        except (ClientError, BotoCoreError) as exc:
            code = _error_code(exc)
            error_cls = QuotaExceededError if code in QUOTA_CODES else ProvisionRequestError
            raise error_cls("run instances", str(exc), code=code) from exc

        instances = resp.get("Instances") or []
        if not instances:
            raise ProvisionRequestError("run instances", "no instance created")
        instance_id = instances[0]["InstanceId"]
        logger.info("Launched instance %s", instance_id)

        public_ip = self._wait_for_public_ip(instance_id, ctx)
        return instance_id, public_ip

    def _build_run_request(
        self, spec: InstanceSpec, instance_type: str, ami: str
    ) -> dict:
        tags = [dict(NAME_TAG)]
        tags += [{"Key": k, "Value": v} for k, v in spec.tags.items()]

        request = {
            "ImageId": ami,
            "InstanceType": instance_type,
            "MinCount": 1,
            "MaxCount": 1,
            "TagSpecifications": [{"ResourceType": "instance", "Tags": tags}],
        }
        if spec.user_data:
            request["UserData"] = base64.b64encode(spec.user_data.encode()).decode()
        if spec.spot_instance:
            request["InstanceMarketOptions"] = {"MarketType": "spot"}
        return request

    def _wait_for_public_ip(self, instance_id: str, ctx: Context) -> str:
        # The public IP is assigned asynchronously; it is usually missing from
        # run_instances and shows up in describe_instances within seconds.
        public_ip = self._poll_public_ip(instance_id, ctx)
        if public_ip:
            return public_ip

        deadline = time.monotonic() + self._poll_timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise AddressAssignmentTimeout(instance_id, self._poll_timeout)
            if not ctx.sleep(min(self._poll_interval, remaining)):
                raise ctx.error(instance_id)
            public_ip = self._poll_public_ip(instance_id, ctx)
            if public_ip:
                return public_ip

    def _poll_public_ip(self, instance_id: str, ctx: Context) -> str:
        try:
            status = self.get_instance_status(instance_id, ctx)
        except OperationCancelled:
            raise ctx.error(instance_id)
        except ProviderError as exc:
            # Eventual consistency: a fresh instance may not be describable yet.
            logger.debug("Status check for %s failed: %s", instance_id, exc)
            return ""
        return status.public_ip

    def get_instance_status(
        self, instance_id: str, ctx: Context | None = None
    ) -> InstanceStatus:
        ctx = ensure_context(ctx)
        ctx.check(instance_id)
        try:
            resp = self._ec2.describe_instances(InstanceIds=[instance_id])
        except (ClientError, BotoCoreError) as exc:
            code = _error_code(exc)
            if code == NOT_FOUND_CODE:
                raise InstanceNotFoundError(instance_id) from exc
            raise BackendError(
                "describe instances", str(exc), instance_id=instance_id, code=code
            ) from exc

        reservations = resp.get("Reservations") or []
        if not reservations or not reservations[0].get("Instances"):
            raise InstanceNotFoundError(instance_id)

        instance = reservations[0]["Instances"][0]
        return InstanceStatus(
            state=map_ec2_state(instance.get("State", {}).get("Name", "")),
            public_ip=instance.get("PublicIpAddress", ""),
            private_ip=instance.get("PrivateIpAddress", ""),
            launched_at=instance.get("LaunchTime"),
        )

    def terminate_instance(self, instance_id: str, ctx: Context | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.check(instance_id)
        try:
            self._ec2.terminate_instances(InstanceIds=[instance_id])
        except (ClientError, BotoCoreError) as exc:
            code = _error_code(exc)
            if code == NOT_FOUND_CODE:
                logger.debug("Instance %s already gone", instance_id)
                return
            raise BackendError(
                "terminate instance", str(exc), instance_id=instance_id, code=code
            ) from exc
        logger.info("Terminated instance %s", instance_id)
