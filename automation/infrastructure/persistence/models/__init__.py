"""Persistence models: ORM entities and mixins."""

from automation.infrastructure.persistence.models.mixins import (
    CuidMixin,
    MultiTenantModel,
    SoftDeleteMixin,
    SoftDeleteMultiTenantModel,
    TenantMixin,
    TimestampMixin,
)
from automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowActionLog,
    WorkflowExecution,
)

__all__ = [
    "CuidMixin",
    "MultiTenantModel",
    "SoftDeleteMixin",
    "SoftDeleteMultiTenantModel",
    "TenantMixin",
    "TimestampMixin",
    "Workflow",
    "WorkflowActionLog",
    "WorkflowExecution",
]
