"""
Core data model for Latai.

Immutable value types shared by providers, the evaluator and the
measurement orchestrator.
"""

from typing import Any
from dataclasses import dataclass, field
from enum import Enum

from latai.utils import calculate_statistics, StatisticalResult


class ModelProvider(Enum):
    """Services a model is served from."""
    OPENAI = "Open AI"
    GROQ = "Groq"
    BEDROCK = "Bedrock"


class ModelVendor(Enum):
    """Companies which built the models."""
    OPENAI = "Open AI"
    AMAZON = "Amazon"
    AI21_LABS = "AI21 Labs"
    ANTHROPIC = "Anthropic"
    COHERE = "Cohere"
    META = "Meta"
    MISTRAL_AI = "Mistral AI"
    GOOGLE = "Google"
    DEEPSEEK = "DeepSeek"


class ModelFamily(Enum):
    """API-compatibility groups. A family defines request/response shape."""
    TITAN = "Titan"
    NOVA = "Nova"
    GPT = "GPT"
    CLAUDE = "Claude"
    JURASSIC = "Jurassic"
    JAMBA = "Jamba"
    COMMAND = "Command"
    COMMAND_R = "Command R"
    LLAMA3 = "Llama 3"
    MISTRAL = "Mistral"
    MIXTRAL = "Mixtral"
    GEMMA = "Gemma"
    R1 = "R1"


class PromptKind(Enum):
    """Origin of a prompt."""
    USER = "user"
    DEFAULT = "default"


@dataclass(frozen=True)
class Model:
    """Identity of a single model served by a provider."""

    id: str
    name: str
    vendor: ModelVendor
    family: ModelFamily
    provider: ModelProvider


@dataclass(frozen=True)
class Prompt:
    """A single prompt used for latency sampling."""

    description: str
    content: str
    kind: PromptKind = PromptKind.DEFAULT


@dataclass(frozen=True)
class Response:
    """Completion returned by a provider."""

    completion: str


@dataclass(frozen=True)
class Sample:
    """Outcome of exactly one timed provider call."""

    latency_ms: float
    response_text: str
    prompt_description: str = ""


@dataclass(frozen=True)
class Evaluation:
    """Aggregated result of one evaluator run."""

    model_name: str
    provider_name: str
    responses: tuple[str, ...]
    average_latency_ms: float
    samples: tuple[Sample, ...] = field(default_factory=tuple)

    @property
    def latencies_ms(self) -> list[float]:
        """Per-call latencies in call order."""
        return [s.latency_ms for s in self.samples]

    def latency_stats(self) -> StatisticalResult:
        """Statistics over the retained samples."""
        return calculate_statistics(self.latencies_ms)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "model_name": self.model_name,
            "provider_name": self.provider_name,
            "responses": list(self.responses),
            "average_latency_ms": self.average_latency_ms,
            "latencies_ms": self.latencies_ms,
        }
