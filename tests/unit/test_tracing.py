"""traced() span naming, argument recording and error status."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from automation.shared.telemetry import tracing


@pytest.fixture
def exporter(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing.trace, "get_tracer", provider.get_tracer)
    return exporter


@tracing.traced("test.run")
async def _run(execution_id: str, payload: dict, *, tenant_id: str | None = None) -> str:
    return execution_id


@tracing.traced("test.fail")
async def _fail(workflow_id: str) -> None:
    raise RuntimeError("boom")


async def test_records_allowlisted_args_only(exporter) -> None:
    assert await _run("exec-1", {"email": "x@example.com"}, tenant_id="t1") == "exec-1"

    [span] = exporter.get_finished_spans()
    assert span.name == "test.run"
    assert span.attributes["automation.execution_id"] == "exec-1"
    assert span.attributes["automation.tenant_id"] == "t1"
    assert not any("payload" in key for key in span.attributes)
    assert span.status.status_code != StatusCode.ERROR


async def test_exception_marks_span_and_propagates(exporter) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        await _fail("wf1")

    [span] = exporter.get_finished_spans()
    assert span.status.status_code == StatusCode.ERROR
    assert span.attributes["automation.workflow_id"] == "wf1"
    assert [event.name for event in span.events] == ["exception"]


def test_rejects_sync_functions() -> None:
    with pytest.raises(TypeError):

        @tracing.traced()
        def _sync() -> None:
            return None
