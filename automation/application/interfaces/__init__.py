"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from automation.infrastructure.
"""

from automation.application.interfaces.repositories import IWorkflowStore
from automation.application.interfaces.services import (
    IExecutionRunner,
    INotificationService,
    IRecipientResolver,
    IRecordUpdater,
    ITemplateRenderer,
    IWebhookCaller,
)

__all__ = [
    "IExecutionRunner",
    "INotificationService",
    "IRecipientResolver",
    "IRecordUpdater",
    "ITemplateRenderer",
    "IWebhookCaller",
    "IWorkflowStore",
]
