from __future__ import annotations

import json

import pytest

from services.response_repair import (
    REASON_EMPTY,
    REASON_OK,
    REASON_PARSE_ERROR,
    REASON_SCHEMA_GATE,
    close_braces,
    parse_json_lenient,
    repair_and_validate,
    strip_code_fence,
)


DOC = {
    "profile": {"name": "Ada Lovelace"},
    "experience": [{"title": "Engineer", "company": "Acme"}],
    "education": [],
    "meta": {"source": {"kind": "page"}},
}


def test_valid_json_passes_gate(valid_json):
    outcome = repair_and_validate(valid_json)
    assert outcome.valid
    assert outcome.reason == REASON_OK
    assert not outcome.repaired
    assert outcome.profile.profile.name == "Ada Lovelace"


def test_code_fence_and_narration_are_stripped():
    body = json.dumps(DOC)
    assert repair_and_validate(f"```json\n{body}\n```").valid
    assert repair_and_validate(f"```\n{body}\n```").valid
    assert repair_and_validate(f"Here is the profile:\n{body}\nLet me know if you need more.").valid
    assert strip_code_fence("no fence") == "no fence"


@pytest.mark.parametrize("k", [1, 2, 3])
def test_truncated_closing_braces_are_recovered(k):
    text = json.dumps(DOC)
    truncated = text
    for _ in range(k):
        idx = truncated.rfind("}")
        truncated = truncated[:idx] + truncated[idx + 1:]
    parsed, repaired = parse_json_lenient(truncated)
    assert repaired
    assert parsed["profile"]["name"] == "Ada Lovelace"

    outcome = repair_and_validate(truncated)
    assert outcome.valid
    assert outcome.repaired


def test_close_braces_is_noop_when_balanced():
    assert close_braces('{"a": {}}') == '{"a": {}}'
    assert close_braces('{"a": {') == '{"a": {}}'


def test_empty_and_garbage():
    assert repair_and_validate("").reason == REASON_EMPTY
    assert repair_and_validate("   ").reason == REASON_EMPTY
    assert repair_and_validate(None).reason == REASON_EMPTY
    assert repair_and_validate("I could not read the page.").reason == REASON_PARSE_ERROR
    assert repair_and_validate('["a", "b"]').reason == REASON_PARSE_ERROR


def test_gate_requires_name():
    outcome = repair_and_validate(json.dumps({"profile": {"name": "  "}, "experience": [{"title": "x"}]}))
    assert not outcome.valid
    assert outcome.reason == REASON_SCHEMA_GATE


def test_gate_requires_experience_or_education():
    outcome = repair_and_validate(json.dumps({"profile": {"name": "Ada"}, "experience": [], "education": []}))
    assert not outcome.valid
    assert outcome.reason == REASON_SCHEMA_GATE

    with_education = repair_and_validate(json.dumps({"profile": {"name": "Ada"}, "education": [{"school": "X"}]}))
    assert with_education.valid


def test_wrong_shapes_fail_the_gate_not_the_parser():
    outcome = repair_and_validate(json.dumps({"profile": "Ada", "experience": [{"title": "x"}]}))
    assert not outcome.valid
    assert outcome.reason == REASON_SCHEMA_GATE


def test_model_output_quirks_are_tolerated():
    outcome = repair_and_validate(
        json.dumps(
            {
                "profile": {"name": "Ada", "headline": None, "location": ["London", "UK"]},
                "experience": [{"title": "Engineer", "startDate": 1843}, "junk"],
                "skills": ["Math", {"name": "Logic"}, "", None],
                "followingCompanies": "not a list",
            }
        )
    )
    assert outcome.valid
    profile = outcome.profile
    assert profile.profile.headline == ""
    assert profile.profile.location == "London; UK"
    assert len(profile.experience) == 1
    assert profile.experience[0].start_date == "1843"
    assert profile.skills == ["Math", "Logic"]
    assert profile.following_companies == []


def test_valid_outcomes_always_satisfy_gate():
    samples = [
        json.dumps(DOC),
        json.dumps({"profile": {"name": "B"}, "education": [{"school": "S"}]}),
        json.dumps({"profile": {"name": ""}, "experience": [{"title": "x"}]}),
        json.dumps({"experience": [{"title": "x"}]}),
    ]
    for raw in samples:
        outcome = repair_and_validate(raw)
        if outcome.valid:
            assert outcome.profile.profile.name.strip()
            assert outcome.profile.experience or outcome.profile.education
