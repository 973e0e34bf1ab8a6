"""
Model providers.

`load_providers` builds and verifies every enabled provider
independently; one provider failing never prevents the others from
loading.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from latai.exceptions import ProviderUnavailableError
from latai.providers.base import ProviderClient, filter_models
from latai.providers.bedrock import BedrockProvider
from latai.providers.groq import GroqProvider
from latai.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)


def _build_openai(settings) -> ProviderClient:
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.request_timeout,
        verify_attempts=settings.verify_attempts,
    )


def _build_groq(settings) -> ProviderClient:
    return GroqProvider(
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
        timeout=settings.request_timeout,
        verify_attempts=settings.verify_attempts,
    )


def _build_bedrock(settings) -> ProviderClient:
    return BedrockProvider(
        profile=settings.aws_profile,
        region=settings.aws_region,
        verify_attempts=settings.verify_attempts,
    )


PROVIDER_FACTORIES: dict[str, Callable[..., ProviderClient]] = {
    "openai": _build_openai,
    "bedrock": _build_bedrock,
    "groq": _build_groq,
}


@dataclass
class ProviderCatalog:
    """Providers which loaded, plus the reasons the others didn't."""

    providers: list[ProviderClient] = field(default_factory=list)
    unavailable: dict[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.providers)


def load_provider(key: str, settings) -> ProviderClient:
    """
    Build and verify a single provider.

    Args:
        key: Provider key, one of `PROVIDER_FACTORIES`
        settings: `ProviderConfig` with credentials

    Returns:
        Verified provider

    Raises:
        ProviderUnavailableError: If the provider can't be built or verified
    """
    factory = PROVIDER_FACTORIES.get(key)
    if factory is None:
        raise ProviderUnavailableError(key, "unknown provider")

    try:
        provider = factory(settings)
        verified = provider.verify_access()
    except ProviderUnavailableError:
        raise
    except Exception as e:
        logger.exception("Loading %s failed", key)
        raise ProviderUnavailableError(key, f"{type(e).__name__}: {e}") from e

    if not verified:
        raise ProviderUnavailableError(
            provider.name.value,
            "access verification failed, check credentials",
        )

    return provider


def load_providers(config) -> ProviderCatalog:
    """
    Load every enabled provider from the application config.

    Args:
        config: `AppConfig` instance

    Returns:
        ProviderCatalog in `enabled_providers` order
    """
    catalog = ProviderCatalog()

    for key in config.enabled_providers:
        try:
            provider = load_provider(key, config.providers)
        except ProviderUnavailableError as e:
            logger.warning("%s", e)
            catalog.unavailable[e.provider] = e.reason
            continue

        logger.info("%s loaded with %d models", provider.name.value, len(provider.models))
        catalog.providers.append(provider)

    return catalog


__all__ = [
    "BedrockProvider",
    "GroqProvider",
    "OpenAIProvider",
    "ProviderCatalog",
    "ProviderClient",
    "filter_models",
    "load_provider",
    "load_providers",
]
