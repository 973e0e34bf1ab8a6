"""
OpenAI provider.

Talks to the chat completions API directly over HTTPS.
"""

import logging
from typing import Optional

import httpx

from latai.exceptions import ProviderUnavailableError, TransportError
from latai.models import Model, ModelFamily, ModelProvider, ModelVendor, Response
from latai.providers.base import ProviderClient
from latai.providers.http import auth_headers, verify_models_endpoint

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def _gpt(model_id: str, name: str) -> Model:
    return Model(
        id=model_id,
        name=name,
        vendor=ModelVendor.OPENAI,
        family=ModelFamily.GPT,
        provider=ModelProvider.OPENAI,
    )


OPENAI_MODELS = (
    _gpt("gpt-4o", "GPT 4o"),
    _gpt("gpt-4o-2024-11-20", "GPT 4o 2024 11 20"),
    _gpt("gpt-4o-2024-08-06", "GPT 4o 2024 08 06"),
    _gpt("gpt-4o-2024-05-13", "GPT 4o 2024 05 13"),
    _gpt("chatgpt-4o-latest", "ChatGPT 4o Latest"),
    _gpt("gpt-4o-mini", "GPT 4o Mini"),
    _gpt("gpt-4o-mini-2024-07-18", "GPT 4o Mini 2024 07 18"),
    _gpt("gpt-4-turbo", "GPT 4 Turbo"),
    _gpt("gpt-4-turbo-2024-04-09", "GPT 4 Turbo 2024 04 09"),
    _gpt("gpt-4-turbo-preview", "GPT 4 Turbo Preview"),
    _gpt("gpt-4-0125-preview", "GPT 4 0125 Preview"),
    _gpt("gpt-4-1106-preview", "GPT 4 1106 Preview"),
    _gpt("gpt-4", "GPT 4"),
    _gpt("gpt-4-0613", "GPT 4 0613"),
    _gpt("gpt-3.5-turbo", "GPT 3.5 Turbo"),
    _gpt("gpt-3.5-turbo-0125", "GPT 3.5 Turbo 0125"),
    _gpt("gpt-3.5-turbo-1106", "GPT 3.5 Turbo 1106"),
    _gpt("gpt-3.5-turbo-16k", "GPT 3.5 Turbo 16k"),
    _gpt("o1", "O1"),
    _gpt("o1-2024-12-17", "O1 2024 12 17"),
    _gpt("o1-preview", "O1 Preview"),
    _gpt("o1-preview-2024-09-12", "O1 Preview 2024 09 12"),
    _gpt("o1-mini", "O1 Mini"),
    _gpt("o1-mini-2024-09-12", "O1 Mini 2024 09 12"),
)


class OpenAIProvider(ProviderClient):
    """
    Client for models served by OpenAI.

    Uses a single pooled `httpx.Client`, shared by concurrent
    measurements.
    """

    name = ModelProvider.OPENAI

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        verify_attempts: int = 3,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key
            base_url: API root URL
            timeout: Request timeout in seconds
            verify_attempts: Attempts for access verification
            http_client: Preconfigured client, mostly for tests

        Raises:
            ProviderUnavailableError: If no API key is available
        """
        if not api_key:
            raise ProviderUnavailableError(
                self.name.value,
                "API key not found, `OPENAI_API_KEY` envar is required.",
            )
        super().__init__(OPENAI_MODELS)

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.verify_attempts = verify_attempts
        self._client = http_client or httpx.Client(
            base_url=base_url,
            headers=auth_headers(api_key),
            timeout=timeout,
        )

    def verify_access(self) -> bool:
        return verify_models_endpoint(
            self.name.value,
            self.base_url,
            self.api_key,
            timeout=self.timeout,
            attempts=self.verify_attempts,
        )

    def send(self, message: str, model: Model) -> Response:
        logger.debug("Sending message (%d chars) to %s", len(message), model.id)

        payload = {
            "model": model.id,
            "messages": [{"role": "user", "content": message}],
        }

        try:
            response = self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.HTTPError as e:
            raise TransportError(f"{model.id}: {e}", model.id) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise TransportError(f"{model.id}: malformed response: {e}", model.id) from e

        return Response(completion=content or "")
