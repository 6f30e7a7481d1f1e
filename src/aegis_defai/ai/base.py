from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ModelResponse:
    text: str
    raw_response: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseAIProvider(ABC):
    """Minimal interface the risk analyst needs from an LLM provider"""

    @abstractmethod
    def reset(self) -> None: ...

    @abstractmethod
    def generate(
        self,
        prompt: str,
        response_mime_type: str | None = None,
        response_schema: Any | None = None,
    ) -> ModelResponse: ...
