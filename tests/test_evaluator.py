"""
Unit tests for the latency evaluator.

Covers precondition checks, both sampling strategies and fail-fast
behavior.
"""

import random
from unittest.mock import Mock

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from helpers import FakeProvider, make_model, make_prompts
from latai.evaluator import Evaluator
from latai.exceptions import (
    NoModelError,
    NoPromptError,
    NoProviderError,
    SampleSizeError,
    TransportError,
    ValidationError,
)


@pytest.fixture
def model():
    return make_model(1)


class TestPreconditions:
    """Validation happens before any provider call."""

    def test_no_provider(self, model):
        """A missing provider is reported first."""
        evaluator = Evaluator(None, None, [])
        with pytest.raises(NoProviderError):
            evaluator.evaluate()

    def test_no_model(self):
        """A missing model is reported, nothing is sent."""
        provider = FakeProvider([])
        with pytest.raises(NoModelError):
            Evaluator(provider, None, make_prompts(3)).evaluate()
        assert provider.calls == []

    def test_zero_sample_size(self, model):
        """Sample size 0 is rejected with zero calls."""
        provider = FakeProvider([model])
        evaluator = Evaluator(provider, model, make_prompts(3), sample_size=0)

        with pytest.raises(SampleSizeError) as exc_info:
            evaluator.evaluate()

        assert exc_info.value.sample_size == 0
        assert provider.calls == []

    def test_negative_sample_size(self, model):
        """Negative sample sizes are rejected too."""
        provider = FakeProvider([model])
        evaluator = Evaluator(provider, model, make_prompts(1)).with_sample_size(-3)
        with pytest.raises(SampleSizeError):
            evaluator.evaluate()

    def test_empty_prompt_pool(self, model):
        """An empty pool is rejected with zero calls."""
        provider = FakeProvider([model])
        with pytest.raises(NoPromptError):
            Evaluator(provider, model, []).evaluate()
        assert provider.calls == []

    def test_empty_pool_with_explicit_sample_size(self, model):
        """An explicit sample size does not hide an empty pool."""
        provider = FakeProvider([model])
        with pytest.raises(NoPromptError):
            Evaluator(provider, model, [], sample_size=4).evaluate()

    def test_validation_errors_share_base(self, model):
        """All precondition errors are ValidationErrors."""
        for error in (NoProviderError(), NoModelError(), NoPromptError(), SampleSizeError(0)):
            assert isinstance(error, ValidationError)


class TestUniqueSampling:
    """One call per prompt when pool size equals sample size."""

    def test_average_latency(self, model):
        """Latencies 100, 150, 200 average to 150."""
        provider = FakeProvider([model], latencies={model.id: [100.0, 150.0, 200.0]})
        prompts = make_prompts(3)

        evaluation = Evaluator(provider, model, prompts).evaluate()

        assert evaluation.average_latency_ms == 150.0
        assert evaluation.latencies_ms == [100.0, 150.0, 200.0]
        assert evaluation.model_name == model.name
        assert evaluation.provider_name == "Groq"

    def test_pool_order(self, model):
        """Prompts are sent once each, in pool order."""
        provider = FakeProvider([model])
        prompts = make_prompts(4)

        evaluation = Evaluator(provider, model, prompts).evaluate()

        assert provider.calls_for(model.id) == [p.description for p in prompts]
        assert evaluation.responses == tuple(f"echo: {p.content}" for p in prompts)

    def test_default_sample_size_is_pool_size(self, model):
        evaluator = Evaluator(FakeProvider([model]), model, make_prompts(5))
        assert evaluator.sample_size == 5
        assert evaluator.is_unique_sampling

    def test_single_prompt(self, model):
        """A single prompt with sample size 1 is unique sampling."""
        provider = FakeProvider([model], latencies={model.id: [42.0]})
        evaluation = Evaluator(provider, model, make_prompts(1), sample_size=1).evaluate()

        assert evaluation.average_latency_ms == 42.0
        assert len(provider.calls) == 1


class TestRandomSampling:
    """Draws with replacement when pool size and sample size differ."""

    def test_call_count_and_indices(self, model):
        """Two prompts with sample size 5 make five calls from the pool."""
        provider = FakeProvider([model])
        prompts = make_prompts(2)

        evaluation = Evaluator(
            provider, model, prompts, sample_size=5, rng=random.Random(7)
        ).evaluate()

        sent = provider.calls_for(model.id)
        assert len(sent) == 5
        assert set(sent) <= {"prompt 0", "prompt 1"}
        assert len(evaluation.responses) == 5

    def test_uses_injected_random_source(self, model):
        """Prompt indices come from the injected random source."""
        rng = Mock(spec=random.Random)
        rng.randrange.side_effect = [2, 2, 0, 1]
        provider = FakeProvider([model])

        Evaluator(provider, model, make_prompts(3), rng=rng).with_sample_size(4).evaluate()

        assert provider.calls_for(model.id) == ["prompt 2", "prompt 2", "prompt 0", "prompt 1"]
        rng.randrange.assert_called_with(3)

    def test_fewer_calls_than_prompts(self, model):
        """Sample size below the pool size still samples randomly."""
        provider = FakeProvider([model], latencies={model.id: [80.0]})
        evaluation = Evaluator(
            provider, model, make_prompts(3), sample_size=1, rng=random.Random(1)
        ).evaluate()

        assert len(provider.calls) == 1
        assert evaluation.average_latency_ms == 80.0

    def test_with_sample_size_chains(self, model):
        evaluator = Evaluator(FakeProvider([model]), model, make_prompts(2))
        assert evaluator.with_sample_size(9) is evaluator
        assert evaluator.sample_size == 9
        assert not evaluator.is_unique_sampling


class TestFailFast:
    """The first failing call aborts the run."""

    def test_error_propagates_unchanged(self, model):
        error = TransportError("connection reset", model.id)
        provider = FakeProvider([model], failures={model.id: error}, fail_after=1)

        with pytest.raises(TransportError) as exc_info:
            Evaluator(provider, model, make_prompts(3)).evaluate()

        assert exc_info.value is error
        assert len(provider.calls) == 2

    def test_first_call_failure(self, model):
        provider = FakeProvider([model], failures={model.id: TransportError("boom")})

        with pytest.raises(TransportError):
            Evaluator(provider, model, make_prompts(2), sample_size=6).evaluate()

        assert len(provider.calls) == 1


class TestEvaluation:
    """Aggregated evaluation result."""

    def test_latency_stats(self, model):
        provider = FakeProvider([model], latencies={model.id: [100.0, 200.0, 300.0]})
        evaluation = Evaluator(provider, model, make_prompts(3)).evaluate()

        stats = evaluation.latency_stats()
        assert stats.mean == 200.0
        assert stats.min_val == 100.0
        assert stats.max_val == 300.0
        assert stats.sample_size == 3

    def test_to_dict(self, model):
        provider = FakeProvider([model], latencies={model.id: [10.0, 30.0]})
        result = Evaluator(provider, model, make_prompts(2)).evaluate().to_dict()

        assert result["average_latency_ms"] == 20.0
        assert result["latencies_ms"] == [10.0, 30.0]
        assert len(result["responses"]) == 2
