"""Domain layer: entities and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from automation.domain.entities import ActionSpec, WorkflowEntity
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

__all__ = [
    # Entities
    "ActionSpec",
    "WorkflowEntity",
    # Exceptions
    "ActionTimeoutException",
    "AuthorizationException",
    "AutomationException",
    "ClaimConflictException",
    "InvalidParametersException",
    "InvalidStatusTransitionException",
    "ProviderException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "UnsupportedActionException",
    "ValidationException",
]
