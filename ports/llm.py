from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence, Tuple

from models.backend_response import BackendResponse
from models.preprocessed_document import PreprocessedDocument
from services.prompt_builder import PromptPair


class BackendClientPort(Protocol):
    provider: str
    model: str
    backend_id: str

    @property
    def timeouts_ms(self) -> Tuple[int, ...]:
        ...

    def call(
        self,
        prompt: PromptPair,
        doc: PreprocessedDocument,
        timeouts_ms: Optional[Sequence[int]] = None,
        before_attempt: Optional[Callable[[], object]] = None,
    ) -> BackendResponse:
        """``before_attempt`` must run before every wire dispatch, retries included."""
        ...
