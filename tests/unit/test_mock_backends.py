"""Unit tests for the in-memory mock provider."""

from __future__ import annotations

import ipaddress
import threading
import time

import pytest

from provisioner.backends.mock.compute import MockProvider
from provisioner.core.context import Context
from provisioner.core.errors import (
    DeadlineExceeded,
    InstanceNotFoundError,
    InvalidSpecError,
    OperationCancelled,
)
from provisioner.core.interfaces import InstanceSpec


def test_name(mock_provider):
    assert mock_provider.name() == "mock"


@pytest.mark.parametrize("size", ["small", "medium", "large"])
@pytest.mark.parametrize("arch", ["amd64", "arm64"])
def test_create_instance_is_immediately_ready(mock_provider, size, arch):
    spec = InstanceSpec(size=size, architecture=arch, region="us-east-1")

    instance_id, public_ip = mock_provider.create_instance(spec)

    assert instance_id.startswith("mock-")
    ipaddress.ip_address(public_ip)

    status = mock_provider.get_instance_status(instance_id)
    assert status.state == "running"
    assert status.is_ready
    assert status.public_ip == public_ip
    assert ipaddress.ip_address(status.private_ip).is_private
    assert status.launched_at is not None


def test_create_instance_rejects_invalid_spec(mock_provider):
    spec = InstanceSpec(size="huge", architecture="amd64", region="us-east-1")
    with pytest.raises(InvalidSpecError):
        mock_provider.create_instance(spec)


def test_get_status_unknown_instance(mock_provider):
    with pytest.raises(InstanceNotFoundError) as exc_info:
        mock_provider.get_instance_status("mock-missing")
    assert exc_info.value.instance_id == "mock-missing"


def test_terminate_keeps_record_in_terminated_state(mock_provider, spec):
    instance_id, _ = mock_provider.create_instance(spec)

    mock_provider.terminate_instance(instance_id)

    status = mock_provider.get_instance_status(instance_id)
    assert status.state == "terminated"
    assert status.public_ip == ""
    assert status.private_ip == ""
    assert not status.is_ready


def test_terminate_is_idempotent(mock_provider, spec):
    instance_id, _ = mock_provider.create_instance(spec)

    mock_provider.terminate_instance(instance_id)
    mock_provider.terminate_instance(instance_id)
    mock_provider.terminate_instance("mock-never-created")


def test_validate_credentials_succeeds(mock_provider):
    mock_provider.validate_credentials()


def test_multiple_instances_are_independent(mock_provider, spec):
    ids = [mock_provider.create_instance(spec)[0] for _ in range(5)]
    assert len(set(ids)) == 5

    mock_provider.terminate_instance(ids[0])

    assert mock_provider.get_instance_status(ids[0]).state == "terminated"
    for instance_id in ids[1:]:
        assert mock_provider.get_instance_status(instance_id).state == "running"


def test_cancelled_context_short_circuits_every_operation(mock_provider, spec):
    instance_id, _ = mock_provider.create_instance(spec)
    ctx = Context()
    ctx.cancel()

    with pytest.raises(OperationCancelled):
        mock_provider.create_instance(spec, ctx)
    with pytest.raises(OperationCancelled):
        mock_provider.get_instance_status(instance_id, ctx)
    with pytest.raises(OperationCancelled):
        mock_provider.terminate_instance(instance_id, ctx)
    with pytest.raises(OperationCancelled):
        mock_provider.validate_credentials(ctx)

    # Nothing was terminated by the cancelled call.
    assert mock_provider.get_instance_status(instance_id).state == "running"


def test_delay_simulates_provisioning_latency(spec):
    provider = MockProvider(delay=0.1)

    start = time.monotonic()
    provider.create_instance(spec)

    assert time.monotonic() - start >= 0.1


def test_delay_respects_deadline(spec):
    provider = MockProvider(delay=5)

    start = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        provider.create_instance(spec, Context(timeout=0.05))
    assert time.monotonic() - start < 2


def test_delay_respects_cancellation(spec):
    provider = MockProvider(delay=5)
    ctx = Context()
    threading.Timer(0.05, ctx.cancel).start()

    with pytest.raises(OperationCancelled):
        provider.create_instance(spec, ctx)


def test_concurrent_creates(mock_provider, spec):
    ids = []
    lock = threading.Lock()

    def create():
        instance_id, _ = mock_provider.create_instance(spec)
        with lock:
            ids.append(instance_id)

    threads = [threading.Thread(target=create) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(ids)) == 20
    for instance_id in ids:
        assert mock_provider.get_instance_status(instance_id).is_ready
