from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class LLMResponse:
    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Optional[dict] = None


class LLMProviderError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class LLMProvider(ABC):
    """Abstract base class for text generation providers."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a completion for a single text prompt."""
        pass
