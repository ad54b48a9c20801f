from __future__ import annotations

import dataclasses
import json
import os
import sys
import time
from concurrent.futures import Executor, Future
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'services.orchestrator'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")


VALID_PROFILE = {
    "profile": {"name": "Ada Lovelace", "headline": "Analyst", "followersCount": "1.2K"},
    "experience": [{"title": "Engineer", "company": "Analytical Engines Ltd"}],
    "education": [],
    "skills": ["Mathematics", "Programming"],
}


class FakeBackend:
    """In-process backend: each call pops the next scripted outcome (the last one repeats).

    An outcome is raw text or an exception instance to raise; ``delays`` are
    seconds to sleep per call.
    """

    def __init__(self, provider, outcomes, model="fake-model", delays=None, tokens=15):
        self.provider = provider
        self.model = model
        self.backend_id = f"{provider}:{model}"
        self.timeouts_ms = (1000,)
        self.outcomes = list(outcomes)
        self.delays = list(delays or [])
        self.tokens = tokens
        self.calls = []

    def call(self, prompt, doc, timeouts_ms=None, before_attempt=None):
        from models.backend_response import BackendResponse
        from models.usage_record import UsageRecord

        index = len(self.calls)
        self.calls.append(timeouts_ms)
        if before_attempt is not None:
            before_attempt()
        if index < len(self.delays) and self.delays[index]:
            time.sleep(self.delays[index])
        outcome = self.outcomes[min(index, len(self.outcomes) - 1)]
        if isinstance(outcome, BaseException):
            raise outcome
        return BackendResponse(
            backend_id=self.backend_id,
            model=self.model,
            raw_text=outcome,
            usage=UsageRecord(input_tokens=self.tokens - 5, output_tokens=5, total_tokens=self.tokens),
            http_status=200,
        )


class InlineExecutor(Executor):
    """Runs submitted work immediately, so both race branches finish in the same tick."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def valid_json():
    return json.dumps(VALID_PROFILE)


@pytest.fixture
def fake_backend():
    return FakeBackend


@pytest.fixture
def inline_executor():
    return InlineExecutor


@pytest.fixture
def settings(monkeypatch):
    from config.settings import get_settings

    monkeypatch.delenv("LLM_TRACE", raising=False)
    get_settings.cache_clear()
    yield dataclasses.replace(get_settings(), min_request_spacing_ms=0)
    get_settings.cache_clear()


@pytest.fixture
def make_orchestrator(settings):
    from services.orchestrator import ExtractionOrchestrator
    from services.rate_limiter import RateLimiter

    def _make(primary, secondary=None, executor_factory=None, **overrides):
        kwargs = {}
        if executor_factory is not None:
            kwargs["executor_factory"] = executor_factory
        return ExtractionOrchestrator(
            primary=primary,
            secondary=secondary,
            rate_limiter=RateLimiter(0),
            settings=dataclasses.replace(settings, **overrides),
            **kwargs,
        )

    return _make


@pytest.fixture
def profile_html():
    sections = "".join(
        f"<section class='pv-profile-section'><h2>Experience {i}</h2><p>Engineer at Acme {i}, 2019 - Present</p></section>"
        for i in range(20)
    )
    return (
        "<html><head><title>Ada</title><style>.x{color:red}</style><script>track()</script></head>"
        "<body><nav class='global-nav'>Home Jobs Messaging</nav>"
        f"<main id='profile' class='scaffold-layout__main'><h1 data-test='name'>Ada Lovelace</h1>{sections}</main>"
        "<footer>About Accessibility</footer></body></html>"
    )
