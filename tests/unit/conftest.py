"""Shared fixtures for unit tests: uses fakes and the mock provider, no network."""

import pytest
import sys
import os

# Add project root to path so provisioner is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from fakes import FakeEC2Client, describe_response

from provisioner.backends.aws.compute import AWSProvider
from provisioner.backends.mock.compute import MockProvider
from provisioner.core.interfaces import InstanceSpec
from provisioner.core.registry import ProviderRegistry


SAMPLE_SPEC = InstanceSpec(
    size="small",
    architecture="amd64",
    region="us-east-1",
    tags={"env": "test"},
)


@pytest.fixture
def spec():
    return SAMPLE_SPEC


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def ec2():
    return FakeEC2Client(describe_responses=[describe_response(public_ip="203.0.113.10")])


@pytest.fixture
def aws(ec2):
    return AWSProvider(ec2, "us-east-1", poll_interval=0.01, poll_timeout=0.5)


@pytest.fixture
def registry():
    return ProviderRegistry()
