from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.llm_routes import ROUTES
from config.settings import Settings, get_settings
from models.backend_response import BackendResponse
from models.preprocessed_document import PreprocessedDocument
from models.usage_record import UsageRecord
from services.errors import ExtractionError, TransientBackendError
from services.prompt_builder import PROMPT_NAME, PromptPair
from services.transport import ResilientTransport
from services.usage import normalize_usage
from utils.llm_logger import log_call, sha256_text


class BackendClient:
    """One adapter per extraction backend.

    Subclasses supply the request envelope (``build_payload``), the wire call
    (``_send``) and a total parser for their response shape
    (``parse_envelope``). Retries and timeouts come from the shared
    ``ResilientTransport``.
    """

    provider: str = ""

    def __init__(
        self,
        *,
        model: str,
        max_output_tokens: int,
        timeouts_ms: Sequence[int],
        operation: str = "profile_extraction",
        temperature: Optional[float] = None,
        transport: Optional[ResilientTransport] = None,
    ) -> None:
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.operation = operation
        self.temperature = temperature
        self.backend_id = f"{self.provider}:{model}"
        self.transport = transport or ResilientTransport(timeouts_ms, provider=self.backend_id)

    @property
    def timeouts_ms(self) -> tuple:
        return self.transport.timeouts_ms

    def build_payload(self, prompt: PromptPair, doc: PreprocessedDocument) -> Dict[str, Any]:
        raise NotImplementedError

    def _send(self, payload: Dict[str, Any], timeout_s: float) -> Dict[str, Any]:
        raise NotImplementedError

    def parse_envelope(self, envelope: Dict[str, Any]) -> str:
        raise NotImplementedError

    def parse_usage(self, envelope: Dict[str, Any]) -> UsageRecord:
        return normalize_usage(self.provider, envelope)

    def call(
        self,
        prompt: PromptPair,
        doc: PreprocessedDocument,
        timeouts_ms: Optional[Sequence[int]] = None,
        before_attempt: Optional[Callable[[], object]] = None,
    ) -> BackendResponse:
        """One logical backend call (possibly several wire attempts). Raises ExtractionError."""
        payload = self.build_payload(prompt, doc)
        prompt_hash = sha256_text(prompt.system + prompt.user)
        budget_ms = sum(timeouts_ms or self.timeouts_ms)
        t0 = time.monotonic()
        try:
            envelope = self.transport.send(
                lambda timeout_s: self._send(payload, timeout_s), timeouts_ms, before_attempt
            )
        except ExtractionError as e:
            self._trace("error", t0, prompt_hash, budget_ms, error=str(e), http_status=e.status)
            raise
        elapsed_ms = int((time.monotonic() - t0) * 1000)

        raw_text = self.parse_envelope(envelope)
        usage = self.parse_usage(envelope)
        self._trace("ok", t0, prompt_hash, budget_ms, usage=usage.as_trace())
        logging.info(
            f"{self.backend_id} responded: {len(raw_text)} chars, tokens in={usage.input_tokens} out={usage.output_tokens}",
            extra={"step": "backend_call", "status": "ok", "provider": self.backend_id, "duration_ms": elapsed_ms},
        )
        if not raw_text.strip():
            raise TransientBackendError(
                f"{self.backend_id} returned an empty completion",
                request_id=usage.request_id,
                provider=self.backend_id,
            )
        return BackendResponse(
            backend_id=self.backend_id,
            model=self.model,
            raw_text=raw_text,
            usage=usage,
            http_status=200,
            elapsed_ms=elapsed_ms,
        )

    def _trace(
        self,
        status: str,
        t0: float,
        prompt_hash: Optional[str],
        budget_ms: int,
        *,
        error: Optional[str] = None,
        http_status: Optional[int] = None,
        usage: Optional[Dict[str, Any]] = None,
    ) -> None:
        log_call(
            caller=f"llm_client.{type(self).__name__}",
            provider=self.provider,
            model=self.model,
            operation=self.operation,
            prompt_hash=prompt_hash,
            duration_ms=int((time.monotonic() - t0) * 1000),
            timeout_ms=budget_ms,
            status=status,
            http_status=http_status,
            error=error,
            usage=usage,
            extras={"prompt_name": PROMPT_NAME},
        )


def _to_envelope(resp: Any) -> Dict[str, Any]:
    """SDK response object -> plain dict, keeping the convenience fields model_dump drops."""
    if isinstance(resp, dict):
        return resp
    envelope: Dict[str, Any] = resp.model_dump() if hasattr(resp, "model_dump") else {"raw": str(resp)}
    output_text = getattr(resp, "output_text", None)
    if isinstance(output_text, str) and "output_text" not in envelope:
        envelope["output_text"] = output_text
    request_id = getattr(resp, "_request_id", None)
    if isinstance(request_id, str):
        envelope.setdefault("request_id", request_id)
    return envelope


class _OpenAIBackend(BackendClient):
    def __init__(self, *, api_key: Optional[str] = None, client: Any = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if client is None:
            from openai import OpenAI

            # Retries belong to ResilientTransport, not the SDK
            client = OpenAI(api_key=api_key, max_retries=0)
        self.client = client


class OpenAIResponsesClient(_OpenAIBackend):
    """OpenAI Responses API (``/v1/responses``)."""

    provider = "openai_responses"

    def build_payload(self, prompt: PromptPair, doc: PreprocessedDocument) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "input": prompt.messages(doc.text),
            "text": {"format": {"type": "json_object"}},
            "max_output_tokens": self.max_output_tokens,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    def _send(self, payload: Dict[str, Any], timeout_s: float) -> Dict[str, Any]:
        return _to_envelope(self.client.responses.create(**payload, timeout=timeout_s))

    def parse_envelope(self, envelope: Dict[str, Any]) -> str:
        output_text = envelope.get("output_text")
        if isinstance(output_text, str) and output_text:
            return output_text
        output = envelope.get("output")
        if isinstance(output, list):
            chunks: List[str] = []
            for item in output:
                content = item.get("content") if isinstance(item, dict) else None
                if not isinstance(content, list):
                    continue
                for part in content:
                    if isinstance(part, dict) and isinstance(part.get("text"), str):
                        chunks.append(part["text"])
            return "".join(chunks)
        return json.dumps(envelope, ensure_ascii=False, default=str)


class OpenAIChatClient(_OpenAIBackend):
    """OpenAI Chat Completions (``/v1/chat/completions``)."""

    provider = "openai_chat"

    def build_payload(self, prompt: PromptPair, doc: PreprocessedDocument) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": prompt.messages(doc.text),
            "response_format": {"type": "json_object"},
            "max_completion_tokens": self.max_output_tokens,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload

    def _send(self, payload: Dict[str, Any], timeout_s: float) -> Dict[str, Any]:
        return _to_envelope(self.client.chat.completions.create(**payload, timeout=timeout_s))

    def parse_envelope(self, envelope: Dict[str, Any]) -> str:
        choices = envelope.get("choices")
        if isinstance(choices, list):
            if not choices or not isinstance(choices[0], dict):
                return ""
            message = choices[0].get("message") or {}
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
            if isinstance(content, list):
                return "".join(p.get("text", "") for p in content if isinstance(p, dict))
            return ""
        return json.dumps(envelope, ensure_ascii=False, default=str)


def build_backend(
    role: str,
    settings: Optional[Settings] = None,
    route: Optional[Dict[str, Any]] = None,
) -> Optional[BackendClient]:
    """Backend client for a role ("primary" / "secondary") per config.llm_routes.

    Returns None when the provider's credentials are not configured.
    """
    from services.gemini_client import GeminiClient

    settings = settings or get_settings()
    route = route or ROUTES.get(role, {})
    provider = (route.get("provider") or "").lower()
    timeouts_ms = settings.primary_timeouts_ms if role == "primary" else settings.secondary_timeouts_ms
    common: Dict[str, Any] = {
        "model": route.get("model"),
        "max_output_tokens": int(route.get("max_output_tokens") or settings.max_output_tokens),
        "timeouts_ms": timeouts_ms,
        "operation": route.get("operation", "profile_extraction"),
        "temperature": route.get("temperature"),
    }

    if provider in ("openai_responses", "openai_chat"):
        if not settings.openai_api_key:
            logging.warning(f"OPENAI_API_KEY missing; {role} backend disabled", extra={"step": "config"})
            return None
        cls = OpenAIResponsesClient if provider == "openai_responses" else OpenAIChatClient
        return cls(api_key=settings.openai_api_key, **common)
    if provider == "gemini":
        if not settings.gemini_api_key:
            logging.warning(f"GEMINI_API_KEY missing; {role} backend disabled", extra={"step": "config"})
            return None
        return GeminiClient(api_key=settings.gemini_api_key, base_url=settings.gemini_base_url, **common)
    raise NotImplementedError(f"Provider not implemented: {provider}")
