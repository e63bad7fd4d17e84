"""WorkflowTemplateRenderer tests (jinja2, StrictUndefined)."""

import jinja2
import pytest

from automation.infrastructure.services.template_renderer import WorkflowTemplateRenderer


def test_default_templates_are_available() -> None:
    renderer = WorkflowTemplateRenderer()
    for key in ("new_lead_alert", "trial_ending", "subscription_changed", "workflow_notification"):
        assert renderer.has_template(key)
    assert not renderer.has_template("unknown")


def test_render_uses_payload_and_variables() -> None:
    renderer = WorkflowTemplateRenderer()
    subject, body = renderer.render(
        "new_lead_alert",
        {"name": "Ada", "email": "ada@example.com", "source": "landing"},
        {"note": "call today"},
    )
    assert subject == "New lead: Ada"
    assert "ada@example.com" in body
    assert "Note: call today" in body


def test_render_workflow_context() -> None:
    renderer = WorkflowTemplateRenderer()
    _, body = renderer.render(
        "workflow_notification", {}, None, {"id": "wf1", "execution_id": "exec-1"}
    )
    assert "Workflow wf1 ran (execution exec-1)" in body


def test_unknown_template_raises_key_error() -> None:
    with pytest.raises(KeyError):
        WorkflowTemplateRenderer().render("nope", {})


def test_missing_variable_is_an_error() -> None:
    renderer = WorkflowTemplateRenderer({"strict": ("Hi {{ payload.name }}", "{{ vars.missing }}")})
    with pytest.raises(jinja2.UndefinedError):
        renderer.render("strict", {"name": "Ada"})
