"""SqlWorkflowStore checks that run before any session is opened (no DB)."""

from unittest.mock import MagicMock

import pytest

from automation.domain.exceptions import ValidationException
from automation.infrastructure.persistence.workflow_store import SqlWorkflowStore
from automation.schemas.workflow import parse_workflow_definition


def _definition(condition: dict):
    return parse_workflow_definition(
        {
            "name": "Nested",
            "trigger_type": "event:lead_created",
            "condition": condition,
            "actions": [{"type": "add_tag", "params": {"entity": "lead", "tag": "new"}}],
        }
    )


async def test_create_workflow_rejects_condition_deeper_than_store_limit() -> None:
    session_factory = MagicMock()
    store = SqlWorkflowStore(session_factory, max_depth=2)
    condition = {"all": [{"any": [{"field": "score", "op": "gt", "value": 5}]}]}

    with pytest.raises(ValidationException, match="maximum depth of 2"):
        await store.create_workflow("t1", _definition(condition))
    session_factory.assert_not_called()
