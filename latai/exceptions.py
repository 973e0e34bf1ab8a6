"""
Error taxonomy for Latai.

Validation errors are raised before any network I/O, transport errors
wrap a failed provider call, and provider-unavailable errors are raised
once per provider at startup.
"""


class LataiError(Exception):
    """Base class for all Latai errors."""


class ValidationError(LataiError):
    """Evaluator preconditions were not met. Never retried."""


class NoProviderError(ValidationError):
    def __init__(self) -> None:
        super().__init__("no provider specified")


class NoModelError(ValidationError):
    def __init__(self) -> None:
        super().__init__("no model provided")


class NoPromptError(ValidationError):
    def __init__(self) -> None:
        super().__init__("no prompt(s) provided")


class SampleSizeError(ValidationError):
    def __init__(self, sample_size: int) -> None:
        super().__init__(f"sample size must be 1 or more, got {sample_size}")
        self.sample_size = sample_size


class TransportError(LataiError):
    """A provider call failed."""

    def __init__(self, message: str, model_id: str = "") -> None:
        super().__init__(message)
        self.model_id = model_id


class ProviderUnavailableError(LataiError):
    """A provider failed to initialize or to verify access."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider} not loaded: {reason}")
        self.provider = provider
        self.reason = reason


class InvalidTransitionError(LataiError):
    """A row status change that the row lifecycle does not allow."""
