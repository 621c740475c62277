from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Chat-completion and embedding backend used by the answer pipeline."""

    @abstractmethod
    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """Generate a completion for role-tagged ``messages``."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Return the embedding vector for ``text``."""
