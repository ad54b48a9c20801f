from __future__ import annotations

import os


# Central routing for the two extraction roles. Edit here to change per-role defaults.
# Model and provider can be overridden via env vars for quick testing.
#
# Keys are role identifiers consumed by services/llm_client.build_backend
ROUTES: dict[str, dict] = {
    # Fast, cheap first attempt (OpenAI Responses API)
    "primary": {
        "provider": os.getenv("LLM_PRIMARY_PROVIDER", "openai_responses"),
        "model": os.getenv("OPENAI_MODEL_PRIMARY", "gpt-5-nano"),
        # Logical operation name for logging (not a vendor API name)
        "operation": "profile_extraction",
    },
    # Slower, higher-quality fallback raced against the primary retry
    "secondary": {
        "provider": os.getenv("LLM_SECONDARY_PROVIDER", "gemini"),
        "model": os.getenv("GEMINI_MODEL", "gemini-2.5-pro"),
        "temperature": 0,
        "operation": "profile_extraction_fallback",
    },
}
