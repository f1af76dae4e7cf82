"""registry.invoker

Convenience facade that pairs a `ModelDispatcher` with a transport, so API
handlers can go from canonical conversation to text (or image) in one call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from model_dispatch.adapters.bedrock_transport import BedrockTransport
from model_dispatch.core.config import DispatchConfig
from model_dispatch.registry.dispatcher import ModelDispatcher
from model_dispatch.registry.model_registry import ModelRegistry

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from model_dispatch.core.abc import AbstractTransport
    from model_dispatch.core.types import ImageGenerationParams, Message, ModelIdentity

logger = logging.getLogger(__name__)


class ModelInvoker:
    """Build, execute and extract in one step."""

    def __init__(self, dispatcher: ModelDispatcher, transport: AbstractTransport) -> None:
        self._dispatcher = dispatcher
        self._transport = transport

    @classmethod
    def from_env(cls) -> ModelInvoker:
        """Wire registry, dispatcher and a Bedrock transport from the environment."""
        config = DispatchConfig.from_env()
        return cls(ModelDispatcher(ModelRegistry(config)), BedrockTransport(config.region))

    @property
    def dispatcher(self) -> ModelDispatcher:
        return self._dispatcher

    def _text_model(self, model: str | ModelIdentity | None) -> str | ModelIdentity:
        if model is not None:
            return model
        default = self._dispatcher.registry.config.default_text_model_id
        if default is None:
            msg = 'No model given and no default text model configured'
            raise ValueError(msg)
        return default

    def _image_model(self, model: str | ModelIdentity | None) -> str | ModelIdentity:
        if model is not None:
            return model
        default = self._dispatcher.registry.config.default_image_model_id
        if default is None:
            msg = 'No model given and no default image model configured'
            raise ValueError(msg)
        return default

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def generate_text(
        self,
        messages: Sequence[Message],
        use_case_id: str,
        model: str | ModelIdentity | None = None,
    ) -> str:
        model = self._text_model(model)
        request = self._dispatcher.build_text_request(messages, use_case_id, model)
        return self._dispatcher.extract_text(self._transport.invoke(request), model)

    def stream_text(
        self,
        messages: Sequence[Message],
        use_case_id: str,
        model: str | ModelIdentity | None = None,
    ) -> Iterator[str]:
        """Yield text fragments in arrival order; events without text are skipped."""
        model = self._text_model(model)
        request = self._dispatcher.build_text_request(messages, use_case_id, model, streaming=True)
        for event in self._transport.invoke_stream(request):
            fragment = self._dispatcher.extract_text(event, model, streaming=True)
            if fragment:
                yield fragment

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    def generate_image(self, params: ImageGenerationParams, model: str | ModelIdentity | None = None) -> str:
        """Return the generated image as base64."""
        model = self._image_model(model)
        request = self._dispatcher.build_image_request(params, model)
        response = self._transport.invoke_image(request)
        logger.debug('Image model %s responded', request['modelId'])
        return self._dispatcher.extract_image(response, model)
