"""Error taxonomy shared by every provider.

Callers branch on exception type, never on message text.
"""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for all provisioning failures."""


class InvalidSpecError(ProviderError, ValueError):
    """The instance specification is malformed. Never retried."""


class UnsupportedCombinationError(InvalidSpecError):
    """Size/architecture pairing has no entry in a backend's mapping tables."""


class BackendError(ProviderError):
    """A backend API call failed. Retry policy is left to the caller."""

    def __init__(
        self,
        operation: str,
        message: str = "",
        *,
        instance_id: str | None = None,
        code: str | None = None,
    ):
        self.operation = operation
        self.instance_id = instance_id
        self.code = code
        detail = f"{operation}: {message}" if message else operation
        if instance_id:
            detail = f"{detail} (instance {instance_id})"
        super().__init__(detail)


class ProvisionRequestError(BackendError):
    """The create request was rejected or could not be submitted."""


class QuotaExceededError(ProvisionRequestError):
    """The backend refused the create request for capacity or account limits."""


class AddressAssignmentTimeout(ProviderError):
    """The instance exists but never received a public IP.

    ``instance_id`` is preserved so the caller can terminate it.
    """

    def __init__(self, instance_id: str, timeout: float):
        self.instance_id = instance_id
        self.timeout = timeout
        super().__init__(
            f"timeout waiting for public IP of {instance_id} after {timeout:g}s"
        )


class InstanceNotFoundError(ProviderError, LookupError):
    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"instance not found: {instance_id}")


class InvalidCredentialsError(ProviderError):
    def __init__(self, provider: str = ""):
        self.provider = provider
        prefix = f"{provider}: " if provider else ""
        super().__init__(f"{prefix}invalid or expired credentials")


class OperationCancelled(ProviderError):
    """The caller's context was cancelled before the operation finished."""

    reason = "operation cancelled"

    def __init__(self, instance_id: str | None = None):
        self.instance_id = instance_id
        message = self.reason
        if instance_id:
            message = f"{message} (instance {instance_id})"
        super().__init__(message)


class DeadlineExceeded(OperationCancelled):
    reason = "deadline exceeded"


class ProviderAlreadyRegisteredError(ProviderError, ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"provider {name!r} is already registered")


class ProviderNotRegisteredError(ProviderError, LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"provider {name!r} not found")
