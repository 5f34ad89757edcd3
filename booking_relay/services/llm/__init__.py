from booking_relay.services.llm.base import LLMProvider, LLMProviderError, LLMResponse
from booking_relay.services.llm.gemini_provider import GeminiProvider

__all__ = ["LLMProvider", "LLMProviderError", "LLMResponse", "GeminiProvider"]
