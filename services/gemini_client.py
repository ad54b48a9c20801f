from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from models.preprocessed_document import PreprocessedDocument
from services.llm_client import BackendClient
from services.prompt_builder import PromptPair


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiClient(BackendClient):
    """Gemini ``generateContent`` over plain HTTP.

    The system prompt goes into ``systemInstruction``; the task text and the
    cleaned document are sent as two parts of one user turn.
    """

    provider = "gemini"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, prompt: PromptPair, doc: PreprocessedDocument) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {
            "maxOutputTokens": self.max_output_tokens,
            "responseMimeType": "application/json",
        }
        if self.temperature is not None:
            generation_config["temperature"] = self.temperature
        return {
            "systemInstruction": {"parts": [{"text": prompt.system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt.user}, {"text": doc.text}]}],
            "generationConfig": generation_config,
        }

    def _send(self, payload: Dict[str, Any], timeout_s: float) -> Dict[str, Any]:
        resp = self.session.post(
            self.endpoint,
            json=payload,
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            timeout=timeout_s,
        )
        resp.raise_for_status()
        return resp.json()

    def parse_envelope(self, envelope: Dict[str, Any]) -> str:
        candidates = envelope.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            # Blocked prompts come back with promptFeedback and no candidates
            return ""
        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        texts: List[str] = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts)
