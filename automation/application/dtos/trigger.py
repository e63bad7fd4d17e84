"""Capability passed in by callers that may start workflows manually."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ManualTriggerGrant:
    """Proof that the caller already authorized actor_id to execute workflows in tenant_id.

    Built by the permission layer after its own check; the dispatcher only
    verifies the grant covers the requested tenant (and workflow, when
    workflow_ids is set). No session or ambient state is consulted.
    """

    actor_id: str
    tenant_id: str
    workflow_ids: frozenset[str] | None = None

    def covers(self, tenant_id: str, workflow_id: str) -> bool:
        """Return whether this grant allows running workflow_id in tenant_id."""
        if self.tenant_id != tenant_id:
            return False
        return self.workflow_ids is None or workflow_id in self.workflow_ids
