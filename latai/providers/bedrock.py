"""
AWS Bedrock provider.

Bedrock hosts models from several vendors, and each model family
expects its own JSON request body and returns its own response shape.
The family is resolved to a `Capability` (request builder plus response
parser) once, from the model's catalog entry.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    ProfileNotFound,
)
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from latai.exceptions import ProviderUnavailableError, TransportError
from latai.models import Model, ModelFamily, ModelProvider, ModelVendor, Response
from latai.providers.base import ProviderClient

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
DEFAULT_REGION = "us-east-1"

MAX_TOKENS = 1024


@dataclass(frozen=True)
class Capability:
    """Request/response codec for one Bedrock model family."""

    build_request: Callable[[str], dict[str, Any]]
    parse_response: Callable[[dict[str, Any]], str]


def _titan_request(message: str) -> dict[str, Any]:
    return {
        "inputText": message,
        "textGenerationConfig": {
            "maxTokenCount": MAX_TOKENS,
            "temperature": 0.1,
            "topP": 0.5,
            "stopSequences": [],
        },
    }


def _nova_request(message: str) -> dict[str, Any]:
    return {"messages": [{"role": "user", "content": [{"text": message}]}]}


def _jurassic_request(message: str) -> dict[str, Any]:
    return {
        "prompt": message,
        "maxTokens": MAX_TOKENS,
        "temperature": 0.5,
        "topP": 0.5,
    }


def _jamba_request(message: str) -> dict[str, Any]:
    return {"messages": [{"role": "user", "content": message}]}


def _claude_request(message: str) -> dict[str, Any]:
    return {
        "messages": [{"role": "user", "content": message}],
        "max_tokens": MAX_TOKENS,
        "temperature": 0.5,
        "top_p": 0.5,
        "anthropic_version": "bedrock-2023-05-31",
    }


def _command_r_request(message: str) -> dict[str, Any]:
    return {"message": message, "temperature": 0.1, "max_tokens": MAX_TOKENS}


def _command_request(message: str) -> dict[str, Any]:
    return {"prompt": message, "temperature": 0.1, "max_tokens": MAX_TOKENS}


def _llama3_request(message: str) -> dict[str, Any]:
    return {
        "prompt": message,
        "temperature": 0.1,
        "top_p": 0.5,
        "max_gen_len": MAX_TOKENS,
    }


def _mistral_request(message: str) -> dict[str, Any]:
    return {
        "prompt": f"<s>[INST] {message} [/INST]",
        "temperature": 0.1,
        "top_p": 0.5,
        "max_tokens": MAX_TOKENS,
    }


CAPABILITIES: dict[tuple[ModelVendor, ModelFamily], Capability] = {
    (ModelVendor.AMAZON, ModelFamily.TITAN): Capability(
        _titan_request, lambda body: body["results"][0]["outputText"]
    ),
    (ModelVendor.AMAZON, ModelFamily.NOVA): Capability(
        _nova_request, lambda body: body["output"]["message"]["content"][0]["text"]
    ),
    (ModelVendor.AI21_LABS, ModelFamily.JURASSIC): Capability(
        _jurassic_request, lambda body: body["completions"][0]["data"]["text"]
    ),
    (ModelVendor.AI21_LABS, ModelFamily.JAMBA): Capability(
        _jamba_request, lambda body: body["choices"][0]["message"]["content"]
    ),
    (ModelVendor.ANTHROPIC, ModelFamily.CLAUDE): Capability(
        _claude_request, lambda body: body["content"][0]["text"]
    ),
    (ModelVendor.COHERE, ModelFamily.COMMAND_R): Capability(
        _command_r_request, lambda body: body["text"]
    ),
    (ModelVendor.COHERE, ModelFamily.COMMAND): Capability(
        _command_request, lambda body: body["generations"][0]["text"]
    ),
    (ModelVendor.META, ModelFamily.LLAMA3): Capability(
        _llama3_request, lambda body: body["generation"]
    ),
    (ModelVendor.MISTRAL_AI, ModelFamily.MISTRAL): Capability(
        _mistral_request, lambda body: body["outputs"][0]["text"]
    ),
}


def _bedrock(model_id: str, name: str, vendor: ModelVendor, family: ModelFamily) -> Model:
    return Model(
        id=model_id,
        name=name,
        vendor=vendor,
        family=family,
        provider=ModelProvider.BEDROCK,
    )


BEDROCK_MODELS = (
    # Mistral
    _bedrock("mistral.mistral-large-2402-v1:0", "Mistral Large (24.02)", ModelVendor.MISTRAL_AI, ModelFamily.MISTRAL),
    _bedrock("mistral.mistral-small-2402-v1:0", "Mistral Small (24.02)", ModelVendor.MISTRAL_AI, ModelFamily.MISTRAL),
    # Meta
    _bedrock("meta.llama3-8b-instruct-v1:0", "Llama 3 8B Instruct", ModelVendor.META, ModelFamily.LLAMA3),
    _bedrock("meta.llama3-70b-instruct-v1:0", "Llama 3 70B Instruct", ModelVendor.META, ModelFamily.LLAMA3),
    # Cohere
    _bedrock("cohere.command-text-v14", "Command", ModelVendor.COHERE, ModelFamily.COMMAND),
    _bedrock("cohere.command-r-v1:0", "Command R", ModelVendor.COHERE, ModelFamily.COMMAND_R),
    _bedrock("cohere.command-r-plus-v1:0", "Command R+", ModelVendor.COHERE, ModelFamily.COMMAND_R),
    _bedrock("cohere.command-light-text-v14", "Command Light", ModelVendor.COHERE, ModelFamily.COMMAND),
    # AI21 Labs
    _bedrock("ai21.jamba-1-5-large-v1:0", "Jamba 1.5 Large", ModelVendor.AI21_LABS, ModelFamily.JAMBA),
    _bedrock("ai21.jamba-1-5-mini-v1:0", "Jamba 1.5 Mini", ModelVendor.AI21_LABS, ModelFamily.JAMBA),
    _bedrock("ai21.j2-mid", "Jurassic-2 Mid", ModelVendor.AI21_LABS, ModelFamily.JURASSIC),
    _bedrock("ai21.j2-mid-v1", "Jurassic-2 Mid v1", ModelVendor.AI21_LABS, ModelFamily.JURASSIC),
    _bedrock("ai21.j2-ultra", "Jurassic-2 Ultra", ModelVendor.AI21_LABS, ModelFamily.JURASSIC),
    # Amazon
    _bedrock("amazon.nova-pro-v1:0", "Nova Pro", ModelVendor.AMAZON, ModelFamily.NOVA),
    _bedrock("amazon.nova-lite-v1:0", "Nova Lite", ModelVendor.AMAZON, ModelFamily.NOVA),
    _bedrock("amazon.nova-micro-v1:0", "Nova Micro", ModelVendor.AMAZON, ModelFamily.NOVA),
    _bedrock("amazon.titan-tg1-large", "Titan Text Large", ModelVendor.AMAZON, ModelFamily.TITAN),
    _bedrock("amazon.titan-text-premier-v1:0", "Titan Text G1 - Premier", ModelVendor.AMAZON, ModelFamily.TITAN),
    _bedrock("amazon.titan-text-lite-v1", "Titan Text G1 - Lite", ModelVendor.AMAZON, ModelFamily.TITAN),
    _bedrock("amazon.titan-text-express-v1", "Titan Text G1 - Express", ModelVendor.AMAZON, ModelFamily.TITAN),
    # Anthropic
    _bedrock("anthropic.claude-instant-v1", "Claude Instant v1", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("anthropic.claude-v2:1", "Claude v2:1", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("anthropic.claude-v2", "Claude v2", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("us.anthropic.claude-3-haiku-20240307-v1:0", "Claude 3 Haiku", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("us.anthropic.claude-3-sonnet-20240229-v1:0", "Claude 3 Sonnet", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("us.anthropic.claude-3-5-haiku-20241022-v1:0", "Claude 3.5 Haiku", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("us.anthropic.claude-3-5-sonnet-20240620-v1:0", "Claude 3.5 Sonnet v1", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
    _bedrock("us.anthropic.claude-3-5-sonnet-20241022-v2:0", "Claude 3.5 Sonnet v2", ModelVendor.ANTHROPIC, ModelFamily.CLAUDE),
)


def resolve_capability(model: Model) -> Optional[Capability]:
    """Look up the request/response codec for a model, if supported."""
    return CAPABILITIES.get((model.vendor, model.family))


class BedrockProvider(ProviderClient):
    """
    Client for models served by AWS Bedrock.

    Credentials come from the shared AWS config (profile and region).
    """

    name = ModelProvider.BEDROCK

    def __init__(
        self,
        profile: str = DEFAULT_PROFILE,
        region: str = DEFAULT_REGION,
        verify_attempts: int = 3,
        session: Optional[boto3.session.Session] = None,
    ):
        """
        Initialize the Bedrock provider.

        Args:
            profile: AWS shared config profile
            region: AWS region
            verify_attempts: Attempts for access verification
            session: Preconfigured boto3 session, mostly for tests

        Raises:
            ProviderUnavailableError: If the AWS profile can't be loaded
        """
        super().__init__(BEDROCK_MODELS)

        self.profile = profile
        self.region = region
        self.verify_attempts = verify_attempts

        try:
            self._session = session or boto3.session.Session(
                profile_name=profile,
                region_name=region,
            )
            self._runtime = self._session.client("bedrock-runtime", region_name=region)
            self._control = self._session.client("bedrock", region_name=region)
        except (ProfileNotFound, BotoCoreError) as e:
            raise ProviderUnavailableError(self.name.value, str(e)) from e

        self._capabilities = {
            model.id: capability
            for model in self.models
            if (capability := resolve_capability(model)) is not None
        }

    def verify_access(self) -> bool:
        retrying = Retrying(
            stop=stop_after_attempt(self.verify_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=4),
            retry=retry_if_exception_type(EndpointConnectionError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    result = self._control.list_foundation_models()
        except (BotoCoreError, ClientError) as e:
            logger.warning("%s access verification failed: %s", self.name.value, e)
            return False

        return len(result.get("modelSummaries", [])) > 0

    def send(self, message: str, model: Model) -> Response:
        capability = self._capabilities.get(model.id)
        if capability is None:
            raise TransportError(
                f"{model.id}: unsupported model family {model.family.value}",
                model.id,
            )

        logger.debug("Sending message (%d chars) to %s", len(message), model.id)

        try:
            result = self._runtime.invoke_model(
                modelId=model.id,
                body=json.dumps(capability.build_request(message)),
                contentType="application/json",
                accept="application/json",
            )
            body = json.loads(result["body"].read())
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"{model.id}: {e}", model.id) from e
        except ValueError as e:
            raise TransportError(f"{model.id}: malformed response: {e}", model.id) from e

        try:
            completion = capability.parse_response(body)
        except (KeyError, IndexError, TypeError) as e:
            raise TransportError(f"{model.id}: unexpected response shape: {e}", model.id) from e

        return Response(completion=completion)
