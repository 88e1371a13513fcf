"""Abstract interfaces for provisioner backends.

Callers depend only on these types, never on cloud-specific SDKs like
boto3. To add a new cloud backend, implement ``CloudProvider`` and register
an instance with a ``ProviderRegistry``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from provisioner.core.context import Context
from provisioner.core.errors import InvalidSpecError

# --- Sizes / architectures ---

SIZE_SMALL = "small"
SIZE_MEDIUM = "medium"
SIZE_LARGE = "large"
SIZES = (SIZE_SMALL, SIZE_MEDIUM, SIZE_LARGE)

ARCH_AMD64 = "amd64"
ARCH_ARM64 = "arm64"
ARCHITECTURES = (ARCH_AMD64, ARCH_ARM64)

# --- Normalized instance states ---

STATE_PENDING = "pending"
STATE_RUNNING = "running"
STATE_STOPPED = "stopped"
STATE_TERMINATED = "terminated"


@dataclass(frozen=True)
class InstanceSpec:
    """What kind of VM to provision.

    ``user_data`` is the plain-text boot script; backends encode it as
    they require. ``region`` is backend-specific (e.g. "us-east-1").
    """

    size: str
    architecture: str
    region: str
    user_data: str = ""
    tags: dict[str, str] = field(default_factory=dict, hash=False)
    spot_instance: bool = False

    def validate(self) -> None:
        if not self.size:
            raise InvalidSpecError("size is required")
        if self.size not in SIZES:
            raise InvalidSpecError("size must be small, medium, or large")

        if not self.architecture:
            raise InvalidSpecError("architecture is required")
        if self.architecture not in ARCHITECTURES:
            raise InvalidSpecError("architecture must be amd64 or arm64")

        if not self.region:
            raise InvalidSpecError("region is required")


@dataclass(frozen=True)
class InstanceStatus:
    """Snapshot of an instance, normalized across backends."""

    state: str
    public_ip: str = ""
    private_ip: str = ""
    launched_at: datetime | None = None

    @property
    def is_ready(self) -> bool:
        # A running instance may not have its public IP yet.
        return self.state == STATE_RUNNING and bool(self.public_ip)


class CloudProvider(Protocol):
    """Provision, inspect and tear down VMs on one backend."""

    def name(self) -> str:
        """Stable provider identifier, e.g. "aws"."""
        ...

    def create_instance(
        self, spec: InstanceSpec, ctx: Context | None = None
    ) -> tuple[str, str]:
        """Provision one instance.

        Returns (instance_id, public_ip). Raises InvalidSpecError before any
        network call when ``spec`` is malformed.
        """
        ...

    def get_instance_status(
        self, instance_id: str, ctx: Context | None = None
    ) -> InstanceStatus:
        """Raises InstanceNotFoundError if the backend has no such instance."""
        ...

    def terminate_instance(self, instance_id: str, ctx: Context | None = None) -> None:
        """Delete an instance. Idempotent: unknown or terminated ids succeed."""
        ...

    def validate_credentials(self, ctx: Context | None = None) -> None:
        """Make one cheap read-only call; raises InvalidCredentialsError."""
        ...
