from __future__ import annotations

import pytest

from models.extraction_request import OptimizationMode, ProfileKind
from pipelines.extract_profile import run_job
from services.errors import FatalBackendError, RequestValidationError, TransientBackendError
from services.extraction_service import build_request, extract_profile
from services.ledger import InMemoryCreditLedger


HTML = "<main><h1>Ada Lovelace</h1><p>Engineer at Analytical Engines</p></main>"


def _payload(**overrides):
    payload = {"html": HTML, "url": "https://www.linkedin.com/in/ada-lovelace/?trk=x", "isOwnProfile": False}
    payload.update(overrides)
    return payload


def test_success_commits_hold(fake_backend, make_orchestrator, valid_json):
    ledger = InMemoryCreditLedger({"acct-1": 3})
    orchestrator = make_orchestrator(fake_backend("openai_responses", [valid_json]))

    ctx = run_job(_payload(), "acct-1", ledger, orchestrator)

    assert ctx.result.success
    assert ctx.meta["outcome"] == "committed"
    assert ledger.balance("acct-1") == 2
    assert ledger.available("acct-1") == 2
    assert ctx.request.source_url == "https://linkedin.com/in/ada-lovelace"


def test_transient_failure_releases_hold(fake_backend, make_orchestrator):
    ledger = InMemoryCreditLedger({"acct-1": 1})
    orchestrator = make_orchestrator(
        fake_backend("openai_responses", [TransientBackendError("timeout")]),
        fake_backend("gemini", [TransientBackendError("503", status=503)]),
    )

    ctx = run_job(_payload(), "acct-1", ledger, orchestrator)

    assert not ctx.result.success
    assert ctx.result.transient
    assert ctx.meta["outcome"] == "released:transient"
    assert ledger.balance("acct-1") == 1
    assert ledger.available("acct-1") == 1


def test_fatal_failure_releases_hold(fake_backend, make_orchestrator):
    ledger = InMemoryCreditLedger({"acct-1": 1})
    orchestrator = make_orchestrator(fake_backend("openai_responses", [FatalBackendError("401", status=401)]))

    ctx = run_job(_payload(), "acct-1", ledger, orchestrator)

    assert ctx.meta["outcome"] == "released:failed"
    assert ledger.balance("acct-1") == 1
    assert ledger.history[-1][1] == "released:failed"


def test_insufficient_credits_stops_before_backend(fake_backend, make_orchestrator, valid_json):
    ledger = InMemoryCreditLedger({"acct-1": 0})
    primary = fake_backend("openai_responses", [valid_json])

    ctx = run_job(_payload(), "acct-1", ledger, make_orchestrator(primary))

    assert ctx.meta["outcome"] == "insufficient_credits"
    assert not ctx.result.success
    assert ctx.result.http_status_hint == 402
    assert primary.calls == []


def test_invalid_request_stops_before_hold(fake_backend, make_orchestrator, valid_json):
    ledger = InMemoryCreditLedger({"acct-1": 5})
    primary = fake_backend("openai_responses", [valid_json])

    ctx = run_job(_payload(url="https://example.com/ada"), "acct-1", ledger, make_orchestrator(primary))

    assert ctx.meta["outcome"] == "invalid_request"
    assert ctx.result.http_status_hint == 400
    assert ledger.history == []
    assert primary.calls == []


def test_ledger_allows_one_active_hold_per_account():
    ledger = InMemoryCreditLedger({"acct-1": 10})
    token = ledger.hold("acct-1", 1)
    assert token
    assert ledger.hold("acct-1", 1) is None
    ledger.release(token, "failed")
    assert ledger.hold("acct-1", 1)


def test_build_request_maps_payload():
    request = build_request(_payload(isOwnProfile=True, optimizationMode="less_aggressive"))
    assert request.profile_kind is ProfileKind.OWN
    assert request.optimization_mode is OptimizationMode.PRESERVE_STRUCTURE

    request = build_request(_payload(isOwnProfile=None))
    assert request.profile_kind is ProfileKind.TARGET
    assert request.optimization_mode is None


@pytest.mark.parametrize("flag", ["true", "yes", 1, 0])
def test_build_request_rejects_non_boolean_own_flag(flag):
    with pytest.raises(RequestValidationError) as exc:
        build_request(_payload(isOwnProfile=flag))
    assert exc.value.user_message == "Invalid isOwnProfile flag."
    assert exc.value.status_hint == 400


def test_extract_profile_rejects_bad_input_without_raising(fake_backend, make_orchestrator, valid_json):
    orchestrator = make_orchestrator(fake_backend("openai_responses", [valid_json]))

    assert extract_profile(_payload(html=""), orchestrator) == {
        "success": False, "transient": False, "userMessage": "Missing HTML content.",
    }
    assert extract_profile(_payload(url="not a url"), orchestrator)["userMessage"] == "Invalid profile URL."
    assert extract_profile(_payload(optimizationMode="turbo"), orchestrator)["success"] is False
    assert extract_profile("not a dict", orchestrator)["success"] is False


def test_extract_profile_success_payload(fake_backend, make_orchestrator, valid_json):
    orchestrator = make_orchestrator(fake_backend("openai_responses", [valid_json], model="gpt-5-nano"))
    payload = extract_profile(_payload(), orchestrator)
    assert payload["success"] is True
    assert payload["model"] == "gpt-5-nano"
    assert payload["data"]["experience"][0]["company"] == "Analytical Engines Ltd"
    assert set(payload) == {"success", "data", "provider", "model", "usage"}
