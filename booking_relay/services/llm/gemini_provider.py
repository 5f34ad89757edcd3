from typing import Optional

import httpx

from booking_relay.logging_config import get_logger
from booking_relay.services.llm.base import LLMProvider, LLMProviderError, LLMResponse

logger = get_logger("llm.gemini")


def first_candidate(data: object) -> dict:
    """Return candidates[0] as a dict, or {} when the body has another shape."""
    if not isinstance(data, dict):
        return {}
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return {}
    candidate = candidates[0]
    return candidate if isinstance(candidate, dict) else {}


def extract_candidate_text(data: object) -> str:
    """Pull candidates[0].content.parts[*].text; any unexpected shape gives ""."""
    content = first_candidate(data).get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [part.get("text") for part in parts if isinstance(part, dict)]
    return "".join(text for text in texts if isinstance(text, str)).strip()


class GeminiProvider(LLMProvider):
    """Google Generative Language API provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 30.0,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        model = model or self.default_model
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds

        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        url = f"{self.base_url}/models/{model}:generateContent"
        logger.debug(f"Gemini request: model={model}, prompt_chars={len(prompt)}")

        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                url,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
            )

        logger.debug(f"Gemini response status: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"Gemini error: {response.text}")
            raise LLMProviderError(
                f"Gemini API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMProviderError(f"Gemini returned invalid JSON: {exc}", status_code=response.status_code)

        content = extract_candidate_text(data)
        finish_reason = first_candidate(data).get("finishReason")
        metadata = data if isinstance(data, dict) else {}
        logger.debug(f"Gemini content: {content[:100] if content else 'EMPTY'}")

        return LLMResponse(
            content=content,
            model=metadata.get("modelVersion", model),
            finish_reason=finish_reason,
            usage=metadata.get("usageMetadata"),
        )
