"""Recipient resolution, log-only notifications and record updater guards (no DB)."""

from unittest.mock import MagicMock

import pytest

from automation.domain.exceptions import ProviderException
from automation.infrastructure.services.notification_service import (
    LogOnlyNotificationService,
    RecipientResolver,
    parse_email_list,
)
from automation.infrastructure.services.record_updater import SqlRecordUpdater


def test_parse_email_list_dedupes_and_keeps_order() -> None:
    assert parse_email_list(" b@x.io, a@x.io ,,b@x.io") == ["b@x.io", "a@x.io"]
    assert parse_email_list("") == []


async def test_resolver_custom_and_support_team() -> None:
    resolver = RecipientResolver(None, ["support@example.com"])

    assert await resolver.get_emails("t1", "custom", "c@example.com") == ["c@example.com"]
    assert await resolver.get_emails("t1", "custom") == []
    assert await resolver.get_emails("t1", "support_team") == ["support@example.com"]
    assert await resolver.get_emails("t1", "everyone") == []


async def test_resolver_company_admin_without_database() -> None:
    assert await RecipientResolver(None).get_emails("t1", "company_admin") == []


async def test_log_only_notification_logs(caplog) -> None:
    caplog.set_level("INFO")
    await LogOnlyNotificationService().send(
        ["a@example.com"], "Subject", "Body", idempotency_key="key-1"
    )
    assert "key-1" in caplog.text


async def test_record_updater_rejects_unknown_entity_before_db() -> None:
    session_factory = MagicMock()
    updater = SqlRecordUpdater(session_factory)

    with pytest.raises(ProviderException, match="unknown entity"):
        await updater.update_field("t1", "invoice", "i1", "status", "paid", idempotency_key="k")
    session_factory.assert_not_called()


async def test_record_updater_rejects_tag_on_untaggable_entity() -> None:
    session_factory = MagicMock()
    updater = SqlRecordUpdater(session_factory)

    with pytest.raises(ProviderException, match="no tags"):
        await updater.add_tag("t1", "subscription", "s1", "vip", idempotency_key="k")
    session_factory.assert_not_called()
