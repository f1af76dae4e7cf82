"""registry.dispatcher

Uniform entry points that turn an application-level request into a provider
payload and turn the provider's reply back into text or an image.

All methods are pure transforms over the immutable `ModelRegistry`; they never
perform I/O. Execute the payloads with an `AbstractTransport`.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from model_dispatch.core.exceptions import UnknownModelError
from model_dispatch.core.types import ModelIdentity, ModelKind

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from model_dispatch.core.types import ImageGenerationParams, Message
    from model_dispatch.registry.model_registry import ModelRegistry

logger = logging.getLogger(__name__)


def _bedrock_model_id(model: str | ModelIdentity) -> str:
    """Accept a bare model id or a `ModelIdentity` targeting Bedrock."""
    if isinstance(model, str):
        return model
    if model.kind is not ModelKind.bedrock:
        raise UnknownModelError(f'No adapter for {model.kind} model: {model.model_id}')
    return model.model_id


class ModelDispatcher:
    """Builds provider requests and extracts provider responses per model id."""

    def __init__(self, registry: ModelRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ModelRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Text generation
    # ------------------------------------------------------------------

    def build_text_request(
        self,
        messages: Sequence[Message],
        use_case_id: str,
        model: str | ModelIdentity,
        *,
        streaming: bool = False,
    ) -> dict[str, Any]:
        """Return ``converse`` (or ``converse_stream``) keyword arguments.

        Raises
        ------
        UnknownModelError
            If model is not a registered text generation model.

        """
        model_id = _bedrock_model_id(model)
        bundle = self._registry.resolve_text(model_id)
        builder = bundle.create_stream_request if streaming else bundle.create_request
        logger.debug(
            'Building %s text request for %s (use case %r)',
            'stream' if streaming else 'single',
            model_id,
            use_case_id,
        )
        return builder(
            messages,
            use_case_id,
            model_id,
            bundle.default_params,
            bundle.usecase_params,
            self._registry.config.guardrail,
        )

    def extract_text(
        self,
        response: Mapping[str, Any],
        model: str | ModelIdentity,
        *,
        streaming: bool = False,
    ) -> str:
        """Return the text of a response, or of one stream event when streaming.

        An empty string means no text was produced; it is not an error.
        """
        bundle = self._registry.resolve_text(_bedrock_model_id(model))
        if streaming:
            return bundle.extract_stream_output_text(response)
        return bundle.extract_output_text(response)

    # ------------------------------------------------------------------
    # Custom endpoints
    # ------------------------------------------------------------------

    def build_custom_endpoint_prompt(self, messages: Sequence[Message], endpoint_name: str) -> str:
        """Render the conversation with the prompt template of endpoint_name."""
        return self._registry.resolve_custom_endpoint_template(endpoint_name).render(messages)

    def extract_custom_endpoint_text(self, text: str, endpoint_name: str) -> str:
        """Strip the end-of-sequence token from generated text."""
        return self._registry.resolve_custom_endpoint_template(endpoint_name).strip_eos(text)

    # ------------------------------------------------------------------
    # Image generation
    # ------------------------------------------------------------------

    def build_image_request(self, params: ImageGenerationParams, model: str | ModelIdentity) -> dict[str, Any]:
        """Return ``invoke_model`` keyword arguments with a JSON body.

        Raises
        ------
        UnknownModelError
            If model is not a registered image generation model.
        MissingPromptError
            If the model requires a positive prompt and params has none.

        """
        model_id = _bedrock_model_id(model)
        body = self._registry.resolve_image(model_id).create_body(params)
        logger.debug('Building image request for %s', model_id)
        return {
            'modelId': model_id,
            'body': json.dumps(body),
            'contentType': 'application/json',
            'accept': 'application/json',
        }

    def extract_image(self, response: Mapping[str, Any], model: str | ModelIdentity) -> str:
        """Return the base64 image of a decoded ``invoke_model`` response body.

        Raises
        ------
        ProviderFailure, ContentFiltered, UnsupportedResponseShape
            See `adapters.image`.

        """
        return self._registry.resolve_image(_bedrock_model_id(model)).extract_output_image(response)
