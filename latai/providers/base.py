"""
Provider client interface.

Every service a model is served from (OpenAI, Groq, AWS Bedrock)
implements `ProviderClient`. Subclasses supply `send` and
`verify_access`; timing is shared.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Iterable

from latai.models import Model, ModelProvider, Prompt, Response, Sample

logger = logging.getLogger(__name__)


def filter_models(models: Iterable[Model], query: str) -> list[Model]:
    """
    Return models whose display name contains the query.

    Matching is case-insensitive. An empty query matches every model.
    """
    query = query.lower()
    return [m for m in models if query in m.name.lower()]


class ProviderClient(ABC):
    """Base class for model providers."""

    name: ModelProvider

    def __init__(self, models: Iterable[Model]):
        self._models = tuple(models)

    @property
    def models(self) -> tuple[Model, ...]:
        """Full model catalog of this provider."""
        return self._models

    def list_models(self, filter: str = "") -> list[Model]:
        """
        List catalog models whose name matches the filter.

        Args:
            filter: Substring to look for in model names

        Returns:
            Matching models in catalog order
        """
        return filter_models(self._models, filter)

    @abstractmethod
    def send(self, message: str, model: Model) -> Response:
        """
        Send a single user message to a model.

        Raises:
            TransportError: If the call fails or the response can't be parsed
        """

    @abstractmethod
    def verify_access(self) -> bool:
        """Check credentials against the provider. Called once at startup."""

    def measure(self, model: Model, prompt: Prompt) -> Sample:
        """
        Send a prompt and record the round-trip latency.

        Args:
            model: Model under test
            prompt: Prompt to send

        Returns:
            Sample with latency and completion text
        """
        start_time = time.perf_counter()

        response = self.send(prompt.content, model)

        end_time = time.perf_counter()
        latency_ms = (end_time - start_time) * 1000

        logger.debug("%s answered in %.1fms", model.id, latency_ms)

        return Sample(
            latency_ms=latency_ms,
            response_text=response.completion,
            prompt_description=prompt.description,
        )
