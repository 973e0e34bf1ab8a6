"""
Test doubles shared by the test modules.
"""

import threading
from typing import Optional

from latai.models import (
    Model,
    ModelFamily,
    ModelProvider,
    ModelVendor,
    Prompt,
    Response,
    Sample,
)
from latai.providers.base import ProviderClient


def make_model(index: int, name: Optional[str] = None) -> Model:
    """Build a catalog entry for tests."""
    return Model(
        id=f"model-{index}",
        name=name or f"Model {index}",
        vendor=ModelVendor.META,
        family=ModelFamily.LLAMA3,
        provider=ModelProvider.GROQ,
    )


def make_prompts(count: int) -> list[Prompt]:
    return [
        Prompt(description=f"prompt {i}", content=f"Question number {i}?")
        for i in range(count)
    ]


class FakeProvider(ProviderClient):
    """
    Provider with scripted latencies and failures.

    `latencies` maps a model ID to the latencies returned by successive
    calls; `failures` maps a model ID to the exception raised once
    `fail_after` calls to that model have succeeded.
    """

    name = ModelProvider.GROQ

    def __init__(
        self,
        models,
        latencies: Optional[dict[str, list[float]]] = None,
        failures: Optional[dict[str, Exception]] = None,
        fail_after: int = 0,
        default_latency: float = 100.0,
        verified: bool = True,
    ):
        super().__init__(models)
        self.latencies = {k: list(v) for k, v in (latencies or {}).items()}
        self.failures = dict(failures or {})
        self.fail_after = fail_after
        self.default_latency = default_latency
        self.verified = verified
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def send(self, message: str, model: Model) -> Response:
        return Response(completion=f"echo: {message}")

    def verify_access(self) -> bool:
        return self.verified

    def calls_for(self, model_id: str) -> list[str]:
        """Prompt descriptions sent to one model, in call order."""
        return [desc for mid, desc in self.calls if mid == model_id]

    def measure(self, model: Model, prompt: Prompt) -> Sample:
        with self._lock:
            previous = len(self.calls_for(model.id))
            self.calls.append((model.id, prompt.description))
            if model.id in self.failures and previous >= self.fail_after:
                raise self.failures[model.id]
            script = self.latencies.get(model.id)
            latency = script.pop(0) if script else self.default_latency

        return Sample(
            latency_ms=latency,
            response_text=self.send(prompt.content, model).completion,
            prompt_description=prompt.description,
        )
