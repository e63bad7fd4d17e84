"""Engine lifespan: wiring, startup and shutdown.

Single place for all startup/shutdown logic (SRP). No business logic
here, only wiring of infrastructure (SQL store, providers, runner,
schedule ticks, Redis event ingress, DB engine dispose).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from automation.application.interfaces.repositories import IWorkflowStore
from automation.application.interfaces.services import (
    INotificationService,
    IRecipientResolver,
    IRecordUpdater,
    ITemplateRenderer,
    IWebhookCaller,
)
from automation.application.services.action_executor import (
    ActionExecutor,
    ActionHandler,
    AddTagHandler,
    CallWebhookHandler,
    ChangeStatusHandler,
    DelayHandler,
    SendNotificationHandler,
    UpdateFieldHandler,
)
from automation.application.services.condition_evaluator import ConditionEvaluator
from automation.application.services.trigger_dispatcher import (
    TriggerDispatcher,
    run_schedule_ticks,
)
from automation.application.services.workflow_engine import WorkflowEngine
from automation.application.use_cases.executions import ExecutionService
from automation.core.config import Settings, get_settings
from automation.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

if TYPE_CHECKING:
    from automation.infrastructure.services.execution_runner import AsyncioExecutionRunner

logger = logging.getLogger(__name__)


def build_action_handlers(
    settings: Settings,
    *,
    notification_service: INotificationService,
    recipient_resolver: IRecipientResolver,
    template_renderer: ITemplateRenderer,
    record_updater: IRecordUpdater,
    webhook_caller: IWebhookCaller,
) -> list[ActionHandler]:
    """Return one handler per action type, bound to the given providers."""
    return [
        SendNotificationHandler(notification_service, recipient_resolver, template_renderer),
        UpdateFieldHandler(record_updater),
        ChangeStatusHandler(record_updater),
        AddTagHandler(record_updater),
        DelayHandler(
            settings.action_max_delay_seconds, settings.delay_poll_interval_seconds
        ),
        CallWebhookHandler(webhook_caller, require_https=settings.webhook_require_https),
    ]


@dataclass
class AutomationRuntime:
    """Wired engine components. Built by build_runtime; owned by engine_lifespan."""

    settings: Settings
    store: IWorkflowStore
    executor: ActionExecutor
    engine: WorkflowEngine
    runner: AsyncioExecutionRunner
    dispatcher: TriggerDispatcher
    executions: ExecutionService
    background_tasks: list[asyncio.Task] = field(default_factory=list)


def build_runtime(
    settings: Settings,
    store: IWorkflowStore,
    handlers: list[ActionHandler],
) -> AutomationRuntime:
    """Wire evaluator, executor, engine, runner and dispatcher around a store."""
    from automation.infrastructure.services.execution_runner import AsyncioExecutionRunner

    evaluator = ConditionEvaluator(settings.condition_max_depth)
    executor = ActionExecutor(
        handlers, default_timeout_seconds=settings.action_default_timeout_seconds
    )
    engine = WorkflowEngine(
        store,
        executor,
        evaluator,
        execution_timeout_seconds=settings.execution_timeout_seconds,
    )
    runner = AsyncioExecutionRunner(engine.run_execution)
    dispatcher = TriggerDispatcher(
        store,
        runner,
        max_depth=settings.condition_max_depth,
        default_schedule_interval_minutes=settings.default_schedule_interval_minutes,
    )
    return AutomationRuntime(
        settings=settings,
        store=store,
        executor=executor,
        engine=engine,
        runner=runner,
        dispatcher=dispatcher,
        executions=ExecutionService(store),
    )


@asynccontextmanager
async def engine_lifespan(
    settings: Settings | None = None,
    *,
    start_schedule: bool = True,
) -> AsyncIterator[AutomationRuntime]:
    """Run startup then yield the runtime; on exit run shutdown.

    Startup order: SQL store and providers, schedule tick loop, Redis
    event ingress (if enabled). Shutdown order: background loops, runner
    drain/cancel, webhook client close, Redis disconnect, SQL engine dispose, span flush.
    """
    from automation.infrastructure.persistence import database
    from automation.infrastructure.persistence.workflow_store import SqlWorkflowStore
    from automation.infrastructure.services.notification_service import (
        LogOnlyNotificationService,
        RecipientResolver,
        parse_email_list,
    )
    from automation.infrastructure.services.record_updater import SqlRecordUpdater
    from automation.infrastructure.services.template_renderer import WorkflowTemplateRenderer
    from automation.infrastructure.services.webhook_caller import HttpxWebhookCaller

    settings = settings or get_settings()

    # ---- Startup ----
    telemetry = TelemetryConfig(
        service_name=settings.app_name,
        service_version=settings.app_version,
        enabled=settings.telemetry_enabled,
        environment=settings.telemetry_environment,
    )
    telemetry.setup_telemetry(
        exporter_type=settings.telemetry_exporter,
        otlp_endpoint=settings.telemetry_otlp_endpoint,
        sample_rate=settings.telemetry_sample_rate,
    )
    set_telemetry(telemetry)

    session_factory = database.get_session_factory()
    if database.engine is not None:
        telemetry.instrument_sqlalchemy(database.engine)
    store = SqlWorkflowStore(session_factory, max_depth=settings.condition_max_depth)
    webhook_caller = HttpxWebhookCaller(
        timeout_seconds=settings.webhook_timeout_seconds,
        signing_secret=(
            settings.webhook_signing_secret.get_secret_value()
            if settings.webhook_signing_secret
            else None
        ),
    )
    handlers = build_action_handlers(
        settings,
        notification_service=LogOnlyNotificationService(),
        recipient_resolver=RecipientResolver(
            session_factory, parse_email_list(settings.support_team_emails)
        ),
        template_renderer=WorkflowTemplateRenderer(),
        record_updater=SqlRecordUpdater(session_factory),
        webhook_caller=webhook_caller,
    )
    runtime = build_runtime(settings, store, handlers)

    if start_schedule:
        runtime.background_tasks.append(
            asyncio.create_task(
                run_schedule_ticks(runtime.dispatcher, settings.schedule_tick_seconds),
                name="workflow-schedule-ticks",
            )
        )

    if settings.redis_enabled:
        from automation.infrastructure.messaging.redis_events import run_event_ingress

        telemetry.instrument_redis()
        runtime.background_tasks.append(
            asyncio.create_task(
                run_event_ingress(runtime.dispatcher), name="workflow-event-ingress"
            )
        )
    logger.info("Automation engine started (%s %s)", settings.app_name, settings.app_version)

    try:
        yield runtime
    finally:
        # ---- Shutdown ----
        for task in runtime.background_tasks:
            task.cancel()
        if runtime.background_tasks:
            await asyncio.gather(*runtime.background_tasks, return_exceptions=True)
            logger.info("Background loops stopped")

        await runtime.runner.shutdown()
        logger.info("Execution runner stopped")

        await webhook_caller.aclose()
        logger.info("Webhook HTTP client closed")

        await database.dispose_engine()

        telemetry.shutdown()
        set_telemetry(None)
