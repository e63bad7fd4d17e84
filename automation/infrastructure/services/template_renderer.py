"""Workflow notification templates: template key → subject/body (Jinja)."""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined, Template

# In-repo template definitions: key → (subject_template, body_template)
# Context: payload (trigger payload snapshot), vars (action params.variables),
# workflow ({"id", "execution_id"}).
_DEFAULT_TEMPLATES: dict[str, tuple[str, str]] = {
    "new_lead_alert": (
        "New lead: {{ payload.get('name') or payload.get('email', 'unknown') }}",
        "A new lead was captured.\n"
        "Email: {{ payload.get('email', 'N/A') }}\n"
        "Source: {{ payload.get('source', 'N/A') }}\n"
        "{% if vars.get('note') %}\nNote: {{ vars['note'] }}\n{% endif %}",
    ),
    "trial_ending": (
        "Your trial ends {{ payload.get('trial_ends_at', 'soon') }}",
        "Your {{ payload.get('plan_name', 'current') }} trial is about to end.\n"
        "Upgrade to keep your landing pages and leads active.",
    ),
    "subscription_changed": (
        "Subscription {{ payload.get('status', 'updated') }}",
        "Plan: {{ payload.get('plan_name', 'N/A') }}\n"
        "Status: {{ payload.get('status', 'N/A') }}",
    ),
    "workflow_notification": (
        "Workflow: {{ vars.get('title') or payload.get('title', 'Notification') }}",
        "Workflow {{ workflow.get('id', 'N/A') }} ran "
        "(execution {{ workflow.get('execution_id', 'N/A') }}).\nPayload: {{ payload }}",
    ),
}


class WorkflowTemplateRenderer:
    """Renders subject and body for the send_notification action from a template key."""

    def __init__(
        self,
        templates: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        """Initialize with optional template dict; falls back to _DEFAULT_TEMPLATES.

        Templates are compiled up front so a malformed one fails at startup.
        """
        self._templates = templates or _DEFAULT_TEMPLATES
        self._env = Environment(autoescape=False, undefined=StrictUndefined)
        self._compiled: dict[str, tuple[Template, Template]] = {}
        for key, (sub_str, body_str) in self._templates.items():
            self._compiled[key] = (
                self._env.from_string(sub_str),
                self._env.from_string(body_str),
            )

    def has_template(self, template_key: str) -> bool:
        return template_key in self._compiled

    def render(
        self,
        template_key: str,
        payload: dict[str, Any],
        variables: dict[str, str] | None = None,
        workflow: dict[str, Any] | None = None,
    ) -> tuple[str, str]:
        """Render subject and body for the template key.

        Raises KeyError if the key is unknown and jinja2.TemplateError when
        the template references something the context does not provide.
        """
        if template_key not in self._compiled:
            raise KeyError(f"Unknown workflow template: {template_key}")
        ctx = {
            "payload": payload,
            "vars": variables or {},
            "workflow": workflow or {},
        }
        subject_tpl, body_tpl = self._compiled[template_key]
        subject = subject_tpl.render(**ctx).strip()
        body = body_tpl.render(**ctx)
        return subject, body
