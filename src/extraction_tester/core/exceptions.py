"""Custom exceptions for extraction-tester."""

from typing import Any


class ExtractionTesterError(Exception):
    """Base exception for all extraction-tester errors."""

    pass


class ConfigurationError(ExtractionTesterError):
    """Raised when a suite configuration is malformed or fails validation.

    Fatal: detected before any case runs.
    """

    def __init__(self, message: str, errors: Any = None) -> None:
        super().__init__(message)
        self.errors = errors


class CredentialError(ExtractionTesterError):
    """Raised when an auth secret cannot be resolved from the environment."""

    def __init__(self, message: str, env_var: str | None = None) -> None:
        super().__init__(message)
        self.env_var = env_var


class DataFetchError(ExtractionTesterError):
    """Raised when input or ground truth data cannot be fetched."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        last_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.last_error = last_error


class ServiceInvocationError(ExtractionTesterError):
    """Raised when the service under test fails or returns a non-success status."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        last_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.last_error = last_error
