"""
Latency Evaluator.

Turns N timed provider calls into one aggregated latency figure for a
single model. Two sampling strategies are selected by comparing the
prompt pool size to the sample size:

- unique sampling: pool size equals sample size, every prompt is sent
  exactly once in pool order. This defeats vendor-side prompt caching
  and is the default.
- random sampling: otherwise, `sample_size` prompts are drawn uniformly
  at random with replacement.

Calls are issued sequentially and the run is fail-fast: the first
failing call aborts the evaluation and its error propagates unchanged.
"""

import logging
import random
from typing import Optional, Sequence

from latai.exceptions import (
    NoModelError,
    NoPromptError,
    NoProviderError,
    SampleSizeError,
)
from latai.models import Evaluation, Model, Prompt, Sample
from latai.providers.base import ProviderClient

logger = logging.getLogger(__name__)


class Evaluator:
    """Measures the average response latency of one model."""

    def __init__(
        self,
        provider: Optional[ProviderClient],
        model: Optional[Model],
        prompts: Sequence[Prompt],
        sample_size: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the evaluator.

        Args:
            provider: Provider serving the model
            model: Model under test
            prompts: Prompt pool
            sample_size: Number of calls; defaults to the pool size
            rng: Random source for random sampling
        """
        self.provider = provider
        self.model = model
        self.prompts = list(prompts)
        self._sample_size = sample_size
        self.rng = rng or random.Random()

    @property
    def sample_size(self) -> int:
        """Number of provider calls a run will make."""
        if self._sample_size is None:
            return len(self.prompts)
        return self._sample_size

    @property
    def is_unique_sampling(self) -> bool:
        return len(self.prompts) == self.sample_size

    def with_sample_size(self, sample_size: int) -> "Evaluator":
        """Set the sample size. Returns self for chaining."""
        self._sample_size = sample_size
        return self

    def validate(self) -> None:
        """
        Check preconditions. Performs no I/O.

        Raises:
            NoProviderError: If no provider was given
            NoModelError: If no model was given
            SampleSizeError: If an explicit sample size is below 1
            NoPromptError: If the prompt pool is empty
        """
        if self.provider is None:
            raise NoProviderError()
        if self.model is None:
            raise NoModelError()
        if self._sample_size is not None and self._sample_size < 1:
            raise SampleSizeError(self._sample_size)
        if not self.prompts:
            raise NoPromptError()

    def evaluate(self) -> Evaluation:
        """
        Run the evaluation.

        Returns:
            Evaluation with the average latency and responses in call order

        Raises:
            ValidationError: If a precondition is violated (no calls made)
            TransportError: If any provider call fails
        """
        self.validate()

        if self.is_unique_sampling:
            logger.debug("Unique sampling %s with %d prompts", self.model.id, len(self.prompts))
            samples = self._run_unique_sample()
        else:
            logger.debug(
                "Random sampling %s: %d calls from %d prompts",
                self.model.id, self.sample_size, len(self.prompts),
            )
            samples = self._run_random_sample()

        total = sum(s.latency_ms for s in samples)
        average = total / len(samples)

        return Evaluation(
            model_name=self.model.name,
            provider_name=self.provider.name.value,
            responses=tuple(s.response_text for s in samples),
            average_latency_ms=average,
            samples=tuple(samples),
        )

    def _run_unique_sample(self) -> list[Sample]:
        """One call per prompt, in pool order."""
        return [self.provider.measure(self.model, prompt) for prompt in self.prompts]

    def _run_random_sample(self) -> list[Sample]:
        """`sample_size` calls, prompts drawn with replacement."""
        samples = []
        for _ in range(self.sample_size):
            index = self.rng.randrange(len(self.prompts))
            samples.append(self.provider.measure(self.model, self.prompts[index]))
        return samples
