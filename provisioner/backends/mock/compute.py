"""Mock cloud provider for testing."""

from __future__ import annotations

import random
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from provisioner.core.context import Context, ensure_context
from provisioner.core.errors import InstanceNotFoundError
from provisioner.core.interfaces import (
    STATE_RUNNING,
    STATE_TERMINATED,
    InstanceSpec,
    InstanceStatus,
)


@dataclass
class _MockInstance:
    instance_id: str
    public_ip: str
    private_ip: str
    state: str
    launched_at: datetime
    size: str
    architecture: str
    region: str


class MockProvider:
    """In-memory provider that never touches the network.

    Instances come up running immediately (after ``delay`` seconds, if set).
    Public IPs are drawn from 192.0.2.0/24 (TEST-NET-1), private IPs from
    10.0.0.0/24. Terminated instances stay queryable in the terminated
    state, as they do on real clouds for a while.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self._instances: dict[str, _MockInstance] = {}
        self._lock = threading.Lock()

    def name(self) -> str:
        return "mock"

    def create_instance(
        self, spec: InstanceSpec, ctx: Context | None = None
    ) -> tuple[str, str]:
        ctx = ensure_context(ctx)
        ctx.check()
        spec.validate()

        if self.delay > 0 and not ctx.sleep(self.delay):
            raise ctx.error()

        instance = _MockInstance(
            instance_id=f"mock-{uuid.uuid4().hex[:12]}",
            public_ip=f"192.0.2.{random.randint(1, 254)}",
            private_ip=f"10.0.0.{random.randint(1, 254)}",
            state=STATE_RUNNING,
            launched_at=datetime.now(timezone.utc),
            size=spec.size,
            architecture=spec.architecture,
            region=spec.region,
        )
        with self._lock:
            self._instances[instance.instance_id] = instance
        return instance.instance_id, instance.public_ip

    def get_instance_status(
        self, instance_id: str, ctx: Context | None = None
    ) -> InstanceStatus:
        ensure_context(ctx).check(instance_id)
        with self._lock:
            instance = self._instances.get(instance_id)
            if instance is None:
                raise InstanceNotFoundError(instance_id)
            return InstanceStatus(
                state=instance.state,
                public_ip=instance.public_ip,
                private_ip=instance.private_ip,
                launched_at=instance.launched_at,
            )

    def terminate_instance(self, instance_id: str, ctx: Context | None = None) -> None:
        ensure_context(ctx).check(instance_id)
        with self._lock:
            instance = self._instances.get(instance_id)
            if instance is None:
                return
            instance.state = STATE_TERMINATED
            instance.public_ip = ""
            instance.private_ip = ""

    def validate_credentials(self, ctx: Context | None = None) -> None:
        ensure_context(ctx).check()
