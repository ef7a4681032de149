"""
Structured error types for ebdeploy.

Every failure that can end a deployment run is represented by a typed
error carrying a category, structured context and an optional chained
cause. The orchestrator turns these into ``Err`` values, the CLI turns
them into a non-zero exit status and the JSON report serializes them via
``to_dict()``.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        DeployError                           │
        │             (category, context, cause)                       │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigurationError      NotFoundError      RemoteOperation  │
        │  (CONFIG)                (NOT_FOUND)        Error (REMOTE)   │
        │       │                       │                              │
        │  MissingOptionError      ApplicationNotFoundError            │
        │  SourceBundleError       EnvironmentNotFoundError            │
        │  MissingCredentialsError                                     │
        │  UnknownDeployTypeError  ConvergenceTimeoutError (TIMEOUT)   │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Retry a RemoteOperationError - a rejected call aborts the run
    ✅ DO: Let the pollers retry their predicates until their own deadline

    ❌ DON'T: Swallow the boto3/botocore exception
    ✅ DO: Pass it as ``cause=`` so the report shows the root cause

Tags:
    error-handling, exception-hierarchy, error-context, ebdeploy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    CONFIG = "CONFIG"  # Missing option, bad bundle, no credentials
    NOT_FOUND = "NOT_FOUND"  # Application or environment lookup failed
    REMOTE = "REMOTE"  # Control-plane or S3 call rejected
    TIMEOUT = "TIMEOUT"  # Convergence deadline exceeded
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        application: Elastic Beanstalk application name
        environment: Environment name or CNAME involved
        stage: Orchestrator stage where the error occurred
        run_id: Deployment run identifier
        operation: Control-plane operation name (e.g. ``UpdateEnvironment``)
        url: Health page URL that was being probed
        http_status: Last observed HTTP status
        metadata: Additional key-value pairs
    """

    application: str | None = None
    environment: str | None = None
    stage: str | None = None
    run_id: str | None = None
    operation: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["application", "environment", "stage", "run_id",
                    "operation", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DeployError(Exception):
    """Base exception for all ebdeploy errors.

    Example:
        >>> error = DeployError("Upload failed", category=ErrorCategory.REMOTE)
        >>> error.with_context(application="my-app").context.application
        'my-app'
        >>> error.to_dict()["category"]
        'REMOTE'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DeployError:
        """Add context fields, unknown keys go to ``metadata``."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (raised before any remote call)
# =============================================================================


class ConfigurationError(DeployError):
    """Invalid or incomplete deployment configuration."""

    default_category = ErrorCategory.CONFIG


class MissingOptionError(ConfigurationError):
    """A required option was not supplied."""

    def __init__(self, option: str, **kwargs: Any):
        super().__init__(f'Missing "{option}"', **kwargs)
        self.option = option


class SourceBundleError(ConfigurationError):
    """The source bundle does not point to a readable file."""


class MissingCredentialsError(ConfigurationError):
    """AWS credentials could not be resolved."""


class UnknownDeployTypeError(ConfigurationError):
    """The requested deploy type has no strategy."""

    def __init__(self, deploy_type: str, **kwargs: Any):
        super().__init__(f'Deploy type "{deploy_type}" unrecognized', **kwargs)
        self.deploy_type = deploy_type


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class NotFoundError(DeployError):
    """A remote entity required by the run does not exist."""

    default_category = ErrorCategory.NOT_FOUND


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application: str, **kwargs: Any):
        super().__init__(f'Application "{application}" does not exist', **kwargs)
        self.with_context(application=application)


class EnvironmentNotFoundError(NotFoundError):
    def __init__(self, cname: str, **kwargs: Any):
        super().__init__(f'Environment with CNAME "{cname}" does not exist', **kwargs)
        self.with_context(environment=cname)


# =============================================================================
# REMOTE / CONVERGENCE ERRORS
# =============================================================================


class RemoteOperationError(DeployError):
    """A control-plane or storage call was rejected.

    The original botocore exception is kept as ``cause``.
    """

    default_category = ErrorCategory.REMOTE

    def __init__(self, operation: str, message: str | None = None, **kwargs: Any):
        cause = kwargs.get("cause")
        text = message or f"{operation} failed"
        if message is None and cause is not None:
            text = f"{operation} failed: {cause}"
        super().__init__(text, **kwargs)
        self.operation = operation
        self.with_context(operation=operation)


class ConvergenceTimeoutError(DeployError):
    """Environment status or health page did not converge in time."""

    default_category = ErrorCategory.TIMEOUT

    def __init__(self, wait: str, timeout: float, elapsed: float | None = None, **kwargs: Any):
        msg = f"Timed out waiting for {wait} after {timeout:g}s"
        if elapsed is not None:
            msg += f" (waited {elapsed:.1f}s)"
        super().__init__(msg, **kwargs)
        self.wait = wait
        self.timeout = timeout
        self.elapsed = elapsed


def error_to_dict(error: Exception) -> dict[str, Any]:
    """Serialize any exception, preserving DeployError structure."""
    if isinstance(error, DeployError):
        return error.to_dict()
    return {
        "error_type": type(error).__name__,
        "message": str(error),
        "category": ErrorCategory.INTERNAL.value,
    }
