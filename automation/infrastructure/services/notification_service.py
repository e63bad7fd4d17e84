"""Workflow notification: log-only sender and recipient resolver."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from automation.shared.telemetry.logging import get_logger
from automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class LogOnlyNotificationService:
    """INotificationService implementation that logs instead of sending email.

    Use when no mail provider is configured. Production can swap in an
    SMTP or queue-based implementation that deduplicates on idempotency_key.
    """

    async def send(
        self,
        to_emails: list[str],
        subject: str,
        body: str,
        *,
        idempotency_key: str,
    ) -> None:
        """Log the notification; no actual email sent."""
        recipients = list(to_emails or [])
        subject_preview = (subject or "")[:80]
        if not recipients:
            logger.info(
                "Workflow notify: no recipients, skipping send (subject=%r)",
                subject_preview,
            )
            return
        logger.info(
            "Workflow notify: would send to %d recipients (subject=%r, key=%s)",
            len(recipients),
            subject_preview,
            idempotency_key,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Workflow notify recipients: %s (at %s)",
                recipients,
                utc_now().isoformat(),
            )
        logger.debug("Workflow notify body (first 500 chars): %s", (body or "")[:500])


def parse_email_list(raw: str) -> list[str]:
    """Split a comma-separated setting into distinct, non-empty addresses (order kept)."""
    seen: dict[str, None] = {}
    for part in (raw or "").split(","):
        email = part.strip()
        if email:
            seen.setdefault(email, None)
    return list(seen)


class RecipientResolver:
    """Resolves notification recipients for a tenant (IRecipientResolver).

    company_admin: active admin users of the tenant's company.
    support_team: addresses from settings (support_team_emails).
    custom: the custom_email from the action params.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None,
        support_team_emails: list[str] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._support_team = list(support_team_emails or [])

    async def get_emails(
        self, tenant_id: str, recipient: str, custom_email: str | None = None
    ) -> list[str]:
        if recipient == "custom":
            return [custom_email] if custom_email else []
        if recipient == "support_team":
            return list(self._support_team)
        if recipient == "company_admin":
            return await self._company_admin_emails(tenant_id)
        logger.warning("Unknown recipient group %r (tenant_id=%s)", recipient, tenant_id)
        return []

    async def _company_admin_emails(self, tenant_id: str) -> list[str]:
        if self._session_factory is None:
            return []
        stmt = text("""
            SELECT DISTINCT u.email
            FROM users u
            WHERE u.company_id = :tenant_id
              AND u.role = 'admin'
              AND u.is_active = true
        """)
        async with self._session_factory() as session:
            result = await session.execute(stmt, {"tenant_id": tenant_id})
            rows = result.fetchall()
        return [row[0] for row in rows if row[0]]
