"""Service interfaces (ports) for the application layer.

Side-effect providers consumed by action handlers, and the runner the
dispatcher hands admitted executions to. Handlers depend on these
protocols only, never on their implementations.
"""

from __future__ import annotations

from typing import Any, Protocol


class INotificationService(Protocol):
    """Protocol for sending workflow notifications (email-style)."""

    async def send(
        self,
        to_emails: list[str],
        subject: str,
        body: str,
        *,
        idempotency_key: str,
    ) -> None:
        """Send a notification to recipients. Raises ProviderException on failure."""


class IRecipientResolver(Protocol):
    """Protocol for resolving notification recipients for a tenant."""

    async def get_emails(
        self, tenant_id: str, recipient: str, custom_email: str | None = None
    ) -> list[str]:
        """Return email addresses for a recipient group (company_admin, support_team, custom)."""


class ITemplateRenderer(Protocol):
    """Protocol for rendering notification subject and body from a template key."""

    def has_template(self, template_key: str) -> bool:
        """Return whether the template key is known."""

    def render(
        self,
        template_key: str,
        payload: dict[str, Any],
        variables: dict[str, str] | None = None,
        workflow: dict[str, Any] | None = None,
    ) -> tuple[str, str]:
        """Return (subject, body). Raises KeyError if template_key is unknown."""


class IRecordUpdater(Protocol):
    """Protocol for mutating tenant records (company, lead, subscription)."""

    async def update_field(
        self,
        tenant_id: str,
        entity: str,
        entity_id: str,
        field: str,
        value: Any,
        *,
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Set one field on a tenant record. Raises ProviderException when the write fails."""

    async def add_tag(
        self,
        tenant_id: str,
        entity: str,
        entity_id: str,
        tag: str,
        *,
        idempotency_key: str,
    ) -> bool:
        """Add tag if absent. Return True if added, False if it was already present."""


class IWebhookCaller(Protocol):
    """Protocol for calling an outbound webhook."""

    async def call(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        body: dict[str, Any],
        *,
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Send the request. Returns status and response text; raises ProviderException on non-2xx."""


class IExecutionRunner(Protocol):
    """Protocol for running admitted executions as independent units of work."""

    def submit(self, execution_id: str) -> None:
        """Schedule the engine run for execution_id and return immediately."""
