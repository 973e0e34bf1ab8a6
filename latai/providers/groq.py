"""
Groq provider.

Inference goes through LangChain's `ChatGroq`; access verification
lists models from Groq's OpenAI-compatible endpoint.
"""

import logging
import threading
from typing import Optional

from langchain_groq import ChatGroq
from langchain_core.messages import HumanMessage

from latai.exceptions import ProviderUnavailableError, TransportError
from latai.models import Model, ModelFamily, ModelProvider, ModelVendor, Response
from latai.providers.base import ProviderClient
from latai.providers.http import verify_models_endpoint

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"


def _groq(model_id: str, name: str, vendor: ModelVendor, family: ModelFamily) -> Model:
    return Model(
        id=model_id,
        name=name,
        vendor=vendor,
        family=family,
        provider=ModelProvider.GROQ,
    )


GROQ_MODELS = (
    _groq("gemma2-9b-it", "Gemma 2 9B IT", ModelVendor.GOOGLE, ModelFamily.GEMMA),
    _groq("llama-3.3-70b-versatile", "Llama 3.3 70b Versatile", ModelVendor.META, ModelFamily.LLAMA3),
    _groq("llama-3.1-8b-instant", "Llama 3.1 8b Instant", ModelVendor.META, ModelFamily.LLAMA3),
    _groq("llama-guard-3-8b", "Llama Guard 3 8B", ModelVendor.META, ModelFamily.LLAMA3),
    _groq("llama3-70b-8192", "Llama3 70b 8192", ModelVendor.META, ModelFamily.LLAMA3),
    _groq("llama3-8b-8192", "Llama3 8b 8192", ModelVendor.META, ModelFamily.LLAMA3),
    _groq("mixtral-8x7b-32768", "Mixtral 8x7b 32768", ModelVendor.MISTRAL_AI, ModelFamily.MIXTRAL),
    _groq("deepseek-r1-distill-llama-70b", "DeepSeek R1 Distill Llama 70B", ModelVendor.DEEPSEEK, ModelFamily.R1),
    _groq("llama-3.2-1b-preview", "Llama 3.2 1b Preview", ModelVendor.META, ModelFamily.LLAMA3),
    _groq("llama-3.2-3b-preview", "Llama 3.2 3b Preview", ModelVendor.META, ModelFamily.LLAMA3),
)


class GroqProvider(ProviderClient):
    """Client for models served by Groq."""

    name = ModelProvider.GROQ

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        verify_attempts: int = 3,
    ):
        """
        Initialize the Groq provider.

        Args:
            api_key: Groq API key
            base_url: OpenAI-compatible API root, used for verification
            timeout: Request timeout in seconds
            verify_attempts: Attempts for access verification

        Raises:
            ProviderUnavailableError: If no API key is available
        """
        if not api_key:
            raise ProviderUnavailableError(
                self.name.value,
                "API key not found, `GROQ_API_KEY` envar is required.",
            )
        super().__init__(GROQ_MODELS)

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.verify_attempts = verify_attempts

        self._clients: dict[str, ChatGroq] = {}
        self._lock = threading.Lock()

    def _create_client(self, model_id: str) -> ChatGroq:
        """Create a LangChain client bound to one model."""
        return ChatGroq(
            model=model_id,
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=0,
        )

    def _get_client(self, model_id: str) -> ChatGroq:
        """Get or create the cached client for a model."""
        with self._lock:
            if model_id not in self._clients:
                self._clients[model_id] = self._create_client(model_id)
            return self._clients[model_id]

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

        try:
            result = self._get_client(model.id).invoke([HumanMessage(content=message)])
        except Exception as e:
            raise TransportError(f"{model.id}: {e}", model.id) from e

        content = result.content
        if not isinstance(content, str):
            content = str(content)

        return Response(completion=content)
