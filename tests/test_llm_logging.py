from __future__ import annotations

import json
from pathlib import Path

from services.prompt_builder import PromptPair
from utils.llm_logger import log_call


def test_llm_trace_writes_jsonl(tmp_path, monkeypatch):
    log_file = tmp_path / "llm_calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "true")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    monkeypatch.setenv("RUN_ID", "test-run-123")

    log_call(
        caller="unit.test",
        provider="openai_responses",
        model="gpt-x",
        operation="profile_extraction",
        prompt_hash="abc",
        duration_ms=42,
        timeout_ms=90000,
        status="ok",
        usage={"total_tokens": 10},
        extras={"prompt_name": "demo"},
    )

    assert log_file.exists()
    lines = log_file.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) >= 1
    rec = json.loads(lines[-1])
    assert rec["caller"] == "unit.test"
    assert rec["provider"] == "openai_responses"
    assert rec["operation"] == "profile_extraction"
    assert rec["run_id"] == "test-run-123"
    assert rec["timeout_ms"] == 90000
    assert rec.get("usage", {}).get("total_tokens") == 10
    assert rec["extras"] == {"prompt_name": "demo"}


def test_llm_trace_disabled_writes_nothing(tmp_path, monkeypatch):
    log_file = tmp_path / "llm_calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "false")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))

    log_call(caller="unit.test", provider="gemini", model="m", operation="profile_extraction")

    assert not log_file.exists()


def test_backend_call_is_traced_and_aggregated(tmp_path, monkeypatch, valid_json):
    from models.extraction_request import OptimizationMode
    from models.preprocessed_document import PreprocessedDocument
    from services.llm_client import OpenAIResponsesClient
    from services.reporting import usage_for_run
    from services.transport import ResilientTransport

    log_file = tmp_path / "trace" / "llm_calls.jsonl"
    monkeypatch.setenv("LLM_TRACE", "1")
    monkeypatch.setenv("LLM_LOG_PATH", str(log_file))
    monkeypatch.setenv("RUN_ID", "run-abc")

    class _Responses:
        def create(self, **kwargs):
            return {"output_text": valid_json, "usage": {"input_tokens": 7, "output_tokens": 3, "total_tokens": 10}}

    client = OpenAIResponsesClient(
        client=type("C", (), {"responses": _Responses()})(),
        model="gpt-5-nano",
        max_output_tokens=100,
        timeouts_ms=(1000,),
        transport=ResilientTransport((1000,), provider="t", sleep=lambda s: None),
    )
    doc = PreprocessedDocument(
        text="<p>x</p>", original_size_bytes=8, final_size_bytes=8, estimated_tokens=3,
        mode=OptimizationMode.PRESERVE_STRUCTURE,
    )
    client.call(PromptPair(system="s", user="u"), doc)

    rec = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert rec["provider"] == "openai_responses"
    assert rec["model"] == "gpt-5-nano"
    assert rec["status"] == "ok"
    assert rec["usage"]["total_tokens"] == 10
    assert rec["prompt_hash"]

    assert usage_for_run("run-abc", str(log_file)) == {"openai_responses": {"calls": 1, "tokens": 10, "errors": 0}}
    assert usage_for_run("other-run", str(log_file)) == {}
    assert usage_for_run("run-abc", str(Path(tmp_path) / "missing.jsonl")) == {}
