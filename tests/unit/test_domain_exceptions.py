"""Tests for domain exceptions (error_code, message, details)."""

from automation.domain.exceptions import (
    ActionTimeoutException,
    AuthorizationException,
    AutomationException,
    ClaimConflictException,
    InvalidParametersException,
    InvalidStatusTransitionException,
    ProviderException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    UnsupportedActionException,
    ValidationException,
)


def test_automation_exception_default_error_code() -> None:
    """Base AutomationException uses class name as error_code when not provided."""
    exc = AutomationException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "AutomationException"
    assert exc.details == {}
    assert str(exc) == "Something failed"


def test_validation_exception() -> None:
    exc = ValidationException("Invalid condition", field="condition.op")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "condition.op"}
    assert ValidationException("x").details == {}


def test_authorization_exception_with_resource_and_action() -> None:
    exc = AuthorizationException(resource="workflow", action="execute")
    assert exc.message == "Permission denied: execute on workflow"
    assert exc.error_code == "PERMISSION_DENIED"
    assert exc.details == {"resource": "workflow", "action": "execute"}


def test_resource_not_found() -> None:
    exc = ResourceNotFoundException("workflow_execution", "exec-1")
    assert exc.message == "workflow_execution not found: exec-1"
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert exc.details == {"resource_type": "workflow_execution", "resource_id": "exec-1"}


def test_action_error_codes() -> None:
    """Action-level failures map to the codes stored on action logs."""
    assert UnsupportedActionException("send_sms").error_code == "UNSUPPORTED_ACTION"
    invalid = InvalidParametersException("delay", "seconds: required", errors=[{"loc": ["seconds"]}])
    assert invalid.error_code == "INVALID_PARAMETERS"
    assert invalid.details["errors"] == [{"loc": ["seconds"]}]
    timeout = ActionTimeoutException("call_webhook", 2.5)
    assert timeout.error_code == "TIMEOUT"
    assert timeout.message == "Action call_webhook timed out after 2.5s"
    provider = ProviderException("webhook", "503 Service Unavailable", status_code=503)
    assert provider.error_code == "PROVIDER_ERROR"
    assert provider.details == {"provider": "webhook", "status_code": 503}


def test_status_exceptions() -> None:
    claim = ClaimConflictException("exec-1", "running")
    assert claim.error_code == "CLAIM_CONFLICT"
    assert claim.details["current_status"] == "running"
    transition = InvalidStatusTransitionException("exec-1", "completed", "failed")
    assert transition.error_code == "INVALID_STATUS_TRANSITION"
    assert transition.details["from_status"] == "completed"


def test_sql_not_configured() -> None:
    exc = SqlNotConfiguredException()
    assert exc.error_code == "SERVICE_UNAVAILABLE"
    assert isinstance(exc, AutomationException)
