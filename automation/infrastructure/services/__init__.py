"""Infrastructure implementations of application service interfaces."""

from automation.infrastructure.services.execution_runner import AsyncioExecutionRunner
from automation.infrastructure.services.notification_service import (
    LogOnlyNotificationService,
    RecipientResolver,
)
from automation.infrastructure.services.record_updater import SqlRecordUpdater
from automation.infrastructure.services.template_renderer import WorkflowTemplateRenderer
from automation.infrastructure.services.webhook_caller import HttpxWebhookCaller

__all__ = [
    "AsyncioExecutionRunner",
    "HttpxWebhookCaller",
    "LogOnlyNotificationService",
    "RecipientResolver",
    "SqlRecordUpdater",
    "WorkflowTemplateRenderer",
]
