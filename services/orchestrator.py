"""
Extraction orchestrator: one primary attempt, then (on transient failure only)
a race between a primary retry and the secondary backend.

    ATTEMPT_PRIMARY -> SUCCESS | RACE | FATAL
    RACE            -> SUCCESS | FATAL

``run`` never raises; every outcome becomes an ``OrchestrationResult``.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from config.settings import Settings, get_settings
from models.backend_response import BackendAttempt, BackendResponse
from models.extraction_request import ExtractionRequest, OptimizationMode
from models.orchestration_result import OrchestrationResult
from models.preprocessed_document import PreprocessedDocument
from ports.llm import BackendClientPort
from services.errors import ExtractionError, RequestValidationError
from services.html_preprocessor import check_raw_size, check_token_budget, preprocess
from services.prompt_builder import PromptPair, build_prompt
from services.rate_limiter import RateLimiter, get_rate_limiter
from services.response_repair import RepairOutcome, repair_and_validate
from services.transport import classify_exception


NOT_CONFIGURED_MESSAGE = "Profile extraction is not configured."
EXTRACTION_FAILED_MESSAGE = "Failed to extract profile data. Please try again."

PRIMARY = "primary"
SECONDARY = "secondary"


class OrchestrationState(str, Enum):
    ATTEMPT_PRIMARY = "attempt_primary"
    RACE = "race"
    SUCCESS = "success"
    FATAL = "fatal"


@dataclass
class AttemptOutcome:
    role: str
    client: BackendClientPort
    attempt: BackendAttempt
    response: Optional[BackendResponse] = None
    repair: Optional[RepairOutcome] = None
    error: Optional[ExtractionError] = None

    @property
    def valid(self) -> bool:
        return self.repair is not None and self.repair.valid

    @property
    def transient(self) -> bool:
        return self.error is not None and self.error.transient

    @property
    def elapsed_ms(self) -> int:
        return int((datetime.now(timezone.utc) - self.attempt.started_at).total_seconds() * 1000)

    def describe(self) -> str:
        label = f"{self.client.backend_id} ({self.elapsed_ms}ms of {self.attempt.timeout_budget_ms}ms)"
        if self.error is not None:
            return f"{label}: {self.error}"
        if self.repair is not None:
            return f"{label}: {self.repair.reason}"
        return f"{label}: no result"


class DaemonThreadExecutor(Executor):
    """One daemon thread per submitted call.

    ThreadPoolExecutor workers are joined at interpreter exit, so an abandoned
    race branch would keep the process alive until its backend call returns.
    Daemon threads are dropped at exit instead.
    """

    def __init__(self, thread_name_prefix: str = "extraction-race") -> None:
        self._prefix = thread_name_prefix
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._shutdown = False

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = fn(*args, **kwargs)
            except BaseException as exc:  # handed to the waiter through the future
                future.set_exception(exc)
            else:
                future.set_result(result)

        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")
            thread = threading.Thread(target=_run, name=f"{self._prefix}_{len(self._threads)}", daemon=True)
            self._threads.append(thread)
        thread.start()
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            self._shutdown = True
            threads = list(self._threads)
        if wait:
            for thread in threads:
                thread.join()


def _default_executor() -> Executor:
    return DaemonThreadExecutor(thread_name_prefix="extraction-race")


class ExtractionOrchestrator:
    def __init__(
        self,
        primary: Optional[BackendClientPort],
        secondary: Optional[BackendClientPort] = None,
        rate_limiter: Optional[RateLimiter] = None,
        settings: Optional[Settings] = None,
        executor_factory: Callable[[], Executor] = _default_executor,
    ) -> None:
        self.settings = settings or get_settings()
        self.primary = primary
        self.secondary = secondary
        self.rate_limiter = rate_limiter or get_rate_limiter(self.settings)
        self.executor_factory = executor_factory

    def run(self, request: ExtractionRequest) -> OrchestrationResult:
        t0 = time.monotonic()
        try:
            result = self._run(request)
        except Exception as e:  # public boundary: convert, never raise
            logging.exception(
                "Unexpected orchestration failure",
                extra={"step": "orchestrator", "state": OrchestrationState.FATAL.value, "error": type(e).__name__},
            )
            result = OrchestrationResult.failure(
                EXTRACTION_FAILED_MESSAGE,
                transient=False,
                http_status_hint=500,
                error_detail=f"{type(e).__name__}: {e}",
            )
        logging.info(
            f"Extraction finished success={result.success} transient={result.transient} provider={result.provider}",
            extra={
                "step": "orchestrator",
                "state": (OrchestrationState.SUCCESS if result.success else OrchestrationState.FATAL).value,
                "duration_ms": int((time.monotonic() - t0) * 1000),
                "provider": result.provider or "-",
            },
        )
        return result

    def _run(self, request: ExtractionRequest) -> OrchestrationResult:
        if self.primary is None:
            return OrchestrationResult.failure(
                NOT_CONFIGURED_MESSAGE,
                transient=False,
                http_status_hint=502,
                error_detail="no primary backend configured",
            )

        mode = request.optimization_mode or OptimizationMode.default_for(request.profile_kind)
        try:
            check_raw_size(request.html, self.settings)
            doc = preprocess(request.html, mode)
            check_token_budget(doc, self.settings)
        except RequestValidationError as e:
            logging.warning(f"Request rejected: {e}", extra={"step": "preprocess", "status": "rejected"})
            return OrchestrationResult.failure(
                e.user_message, transient=False, http_status_hint=e.status_hint, error_detail=str(e)
            )
        prompt = build_prompt(request.profile_kind)

        self._enter(OrchestrationState.ATTEMPT_PRIMARY)
        first = self._attempt(PRIMARY, self.primary, prompt, doc)
        if first.valid:
            return self._success(first)
        if not first.transient:
            # Auth/bad request or a response that failed repair: a second call cannot help
            return self._fatal([first], transient=False)
        if not self.settings.race_enabled:
            logging.info("Race disabled; surfacing transient primary failure", extra={"step": "orchestrator"})
            return self._fatal([first], transient=True)

        self._enter(OrchestrationState.RACE)
        winner, failures = self._race(prompt, doc)
        if winner is not None:
            return self._success(winner)
        return self._fatal([first] + failures, transient=any(f.transient for f in failures))

    def _attempt(
        self,
        role: str,
        client: BackendClientPort,
        prompt: PromptPair,
        doc: PreprocessedDocument,
        timeouts_ms: Optional[Sequence[int]] = None,
    ) -> AttemptOutcome:
        """Call, then repair. Every wire attempt passes the rate limiter; errors land on the outcome."""
        budget = timeouts_ms or client.timeouts_ms
        outcome = AttemptOutcome(
            role=role,
            client=client,
            attempt=BackendAttempt(backend_id=client.backend_id, timeout_budget_ms=sum(budget)),
        )
        gate = partial(self.rate_limiter.acquire, client.backend_id)
        try:
            outcome.response = client.call(prompt, doc, timeouts_ms, before_attempt=gate)
        except Exception as exc:  # unknown exception types are classified as fatal
            outcome.error = classify_exception(exc, client.backend_id)
            logging.warning(
                f"{role} attempt failed: {outcome.error}",
                extra={
                    "step": "attempt",
                    "status": "transient" if outcome.transient else "fatal",
                    "provider": client.backend_id,
                    "error": type(exc).__name__,
                },
            )
            return outcome
        outcome.repair = repair_and_validate(outcome.response.raw_text)
        return outcome

    def _race(self, prompt: PromptPair, doc: PreprocessedDocument) -> Tuple[Optional[AttemptOutcome], List[AttemptOutcome]]:
        executor = self.executor_factory()
        futures = {
            executor.submit(
                self._attempt, PRIMARY, self.primary, prompt, doc, self.settings.race_primary_timeouts_ms
            ): PRIMARY
        }
        if self.secondary is not None:
            futures[executor.submit(self._attempt, SECONDARY, self.secondary, prompt, doc)] = SECONDARY
        else:
            logging.info("No secondary backend; race is a single primary retry", extra={"step": "race"})

        failures: List[AttemptOutcome] = []
        pending = set(futures)
        try:
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                # Same tick: primary before secondary
                finished = sorted((f.result() for f in done), key=lambda o: o.role != PRIMARY)
                for outcome in finished:
                    if outcome.valid:
                        logging.info(
                            f"Race won by {outcome.role}",
                            extra={
                                "step": "race",
                                "status": "won",
                                "provider": outcome.client.backend_id,
                                "duration_ms": outcome.elapsed_ms,
                            },
                        )
                        return outcome, failures
                    failures.append(outcome)
            return None, failures
        finally:
            # Discard, do not cancel: a still-running loser finishes on its daemon
            # thread and its result (usage included) is dropped with the future.
            executor.shutdown(wait=False)

    def _enter(self, state: OrchestrationState) -> None:
        logging.info(f"Orchestrator -> {state.value}", extra={"step": "orchestrator", "state": state.value})

    def _success(self, outcome: AttemptOutcome) -> OrchestrationResult:
        response = outcome.response
        assert response is not None and outcome.repair is not None
        return OrchestrationResult(
            success=True,
            data=outcome.repair.profile,
            provider=outcome.client.provider,
            model=response.model,
            usage=response.usage,
            raw_response=response.raw_text,
            http_status_hint=200,
        )

    def _fatal(self, outcomes: List[AttemptOutcome], *, transient: bool) -> OrchestrationResult:
        """Surface the most specific error seen: the last transient one, else the last one."""
        errors = [o for o in outcomes if o.error is not None]
        chosen = next((o for o in reversed(errors) if o.transient), None) or (errors[-1] if errors else None)
        detail = "; ".join(o.describe() for o in outcomes)
        logging.warning(
            f"Extraction failed: {detail}",
            extra={"step": "orchestrator", "state": OrchestrationState.FATAL.value, "status": "transient" if transient else "fatal"},
        )
        last = outcomes[-1] if outcomes else None
        if chosen is None or (chosen.transient and not transient):
            # Backends answered but nothing passed repair/acceptance
            return OrchestrationResult.failure(
                EXTRACTION_FAILED_MESSAGE,
                transient=transient,
                http_status_hint=502,
                error_detail=detail,
                provider=last.client.provider if last else None,
                raw_response=last.response.raw_text if last and last.response else None,
            )
        error = chosen.error
        assert error is not None
        return OrchestrationResult.failure(
            error.user_message,
            transient=transient,
            http_status_hint=503 if transient else error.status_hint,
            error_detail=detail,
            provider=chosen.client.provider,
        )


def build_orchestrator(settings: Optional[Settings] = None) -> ExtractionOrchestrator:
    """Orchestrator wired from settings and config.llm_routes, sharing the process rate limiter."""
    from services.llm_client import build_backend

    settings = settings or get_settings()
    return ExtractionOrchestrator(
        primary=build_backend(PRIMARY, settings),
        secondary=build_backend(SECONDARY, settings),
        rate_limiter=get_rate_limiter(settings),
        settings=settings,
    )
