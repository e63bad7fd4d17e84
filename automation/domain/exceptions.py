"""Domain exceptions for the automation engine.

Defines domain-level exceptions that represent rule violations and
action failures. These exceptions are independent of infrastructure
concerns. Callers (API layer, engine) map them to responses or to
failed action logs using message, error_code, and details.
"""

from typing import Any


class AutomationException(Exception):
    """Base exception for all automation engine errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AutomationException):
    """Raised when a workflow, condition or action definition is invalid.

    Surfaced to the trigger caller before any execution exists.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or path that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthorizationException(AutomationException):
    """Raised when a manual trigger grant does not cover the requested run."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(AutomationException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'workflow', 'workflow_execution').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class UnsupportedActionException(AutomationException):
    """Raised when an action type has no registered handler."""

    def __init__(self, action_type: str) -> None:
        super().__init__(
            f"Unsupported action type: {action_type}",
            "UNSUPPORTED_ACTION",
            {"action_type": action_type},
        )


class InvalidParametersException(AutomationException):
    """Raised when action parameters are missing or malformed (before any side effect)."""

    def __init__(
        self, action_type: str, reason: str, errors: list[Any] | None = None
    ) -> None:
        """Initialize with action type and reason.

        Args:
            action_type: Action type whose parameters were rejected.
            reason: Human-readable summary.
            errors: Optional structured errors (e.g. from pydantic).
        """
        details: dict[str, Any] = {"action_type": action_type}
        if errors:
            details["errors"] = errors
        super().__init__(
            f"Invalid parameters for {action_type}: {reason}",
            "INVALID_PARAMETERS",
            details,
        )


class ActionTimeoutException(AutomationException):
    """Raised when an action does not complete within its timeout (outcome unknown)."""

    def __init__(self, action_type: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Action {action_type} timed out after {timeout_seconds:g}s",
            "TIMEOUT",
            {"action_type": action_type, "timeout_seconds": timeout_seconds},
        )


class ProviderException(AutomationException):
    """Raised when a downstream side-effect provider call fails."""

    def __init__(self, provider: str, reason: str, **details_extra: Any) -> None:
        """Initialize with provider name and reason.

        Args:
            provider: Provider that failed (e.g. 'webhook', 'record_updater').
            reason: Human-readable failure reason.
            **details_extra: Optional keys merged into details (e.g. status_code).
        """
        super().__init__(
            f"{provider} failed: {reason}",
            "PROVIDER_ERROR",
            {"provider": provider, **details_extra},
        )


class ClaimConflictException(AutomationException):
    """Raised when another worker already claimed (or finished) a pending execution.

    Not a failure: the losing worker exits without touching the execution.
    """

    def __init__(self, execution_id: str, current_status: str | None = None) -> None:
        super().__init__(
            f"Execution {execution_id} is no longer pending",
            "CLAIM_CONFLICT",
            {"execution_id": execution_id, "current_status": current_status},
        )


class InvalidStatusTransitionException(AutomationException):
    """Raised when an execution status update does not match the expected current status."""

    def __init__(self, execution_id: str, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Execution {execution_id} cannot move from {from_status} to {to_status}",
            "INVALID_STATUS_TRANSITION",
            {
                "execution_id": execution_id,
                "from_status": from_status,
                "to_status": to_status,
            },
        )


class SqlNotConfiguredException(AutomationException):
    """Raised when an operation requires Postgres but DATABASE_URL is not set."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
