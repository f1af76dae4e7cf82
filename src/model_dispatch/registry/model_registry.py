"""registry.model_registry

Maps model identifiers to the adapter bundle that knows how to talk to them.

Three disjoint registries exist:

* text generation models, looked up by exact model id;
* image generation models, looked up by exact model id;
* custom (SageMaker) endpoints, matched by substring on the operator-chosen
  endpoint name.

The static catalogs below list every model the adapters support. A
`ModelRegistry` narrows them to what a deployment enables and is immutable once
built.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict

from model_dispatch.adapters import converse, image
from model_dispatch.core.config import DispatchConfig
from model_dispatch.core.exceptions import InvalidModelError, UnknownModelError
from model_dispatch.core.types import (
    GuardrailConfig,
    ImageGenerationParams,
    InferenceParams,
    InferenceParamsOverride,
    Message,
)
from model_dispatch.params import inference_params as ip
from model_dispatch.params.prompt_templates import (
    BILINGUAL_RINNA_PROMPT,
    LLAMA_PROMPT,
    RINNA_PROMPT,
    PromptTemplate,
)

logger = logging.getLogger(__name__)

TextRequestBuilder = Callable[
    [
        Sequence[Message],
        str,
        str,
        InferenceParams,
        Mapping[str, InferenceParamsOverride],
        GuardrailConfig | None,
    ],
    dict[str, Any],
]
TextExtractor = Callable[[Mapping[str, Any]], str]
ImageBodyBuilder = Callable[[ImageGenerationParams], dict[str, Any]]
ImageExtractor = Callable[[Mapping[str, Any]], str]


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------


class TextAdapterBundle(BaseModel):
    """Everything needed to call one text generation model family."""

    default_params: InferenceParams
    usecase_params: Mapping[str, InferenceParamsOverride]
    create_request: TextRequestBuilder
    create_stream_request: TextRequestBuilder
    extract_output_text: TextExtractor
    extract_stream_output_text: TextExtractor

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class ImageAdapterBundle(BaseModel):
    """Everything needed to call one image generation model family."""

    create_body: ImageBodyBuilder
    extract_output_image: ImageExtractor

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def _converse_bundle(default_params: InferenceParams) -> TextAdapterBundle:
    return TextAdapterBundle(
        default_params=default_params,
        usecase_params=ip.USECASE_DEFAULT_PARAMS,
        create_request=converse.create_converse_input,
        create_stream_request=converse.create_converse_stream_input,
        extract_output_text=converse.extract_converse_output_text,
        extract_stream_output_text=converse.extract_converse_stream_output_text,
    )


def _converse_bundle_without_system_context(default_params: InferenceParams) -> TextAdapterBundle:
    return TextAdapterBundle(
        default_params=default_params,
        usecase_params=ip.USECASE_DEFAULT_PARAMS,
        create_request=converse.create_converse_input_without_system_context,
        create_stream_request=converse.create_converse_stream_input_without_system_context,
        extract_output_text=converse.extract_converse_output_text,
        extract_stream_output_text=converse.extract_converse_stream_output_text,
    )


# ---------------------------------------------------------------------------
# Static catalogs
# ---------------------------------------------------------------------------

_CLAUDE = _converse_bundle(ip.CLAUDE_DEFAULT_PARAMS)
_TITAN_TEXT = _converse_bundle_without_system_context(ip.TITAN_TEXT_DEFAULT_PARAMS)
_LLAMA = _converse_bundle(ip.LLAMA_DEFAULT_PARAMS)
_MISTRAL = _converse_bundle(ip.MISTRAL_DEFAULT_PARAMS)
_MISTRAL_INSTRUCT = _converse_bundle_without_system_context(ip.MISTRAL_DEFAULT_PARAMS)
_MIXTRAL_INSTRUCT = _converse_bundle_without_system_context(ip.MIXTRAL_DEFAULT_PARAMS)
_COMMANDR = _converse_bundle(ip.COMMANDR_DEFAULT_PARAMS)
_NOVA = _converse_bundle(ip.NOVA_DEFAULT_PARAMS)


def _with_regions(model_id: str, *prefixes: str) -> list[str]:
    """``model_id`` plus its cross-region inference profile ids."""
    return [model_id, *(f'{prefix}.{model_id}' for prefix in prefixes)]


def _catalog(*groups: tuple[list[str], Any]) -> Mapping[str, Any]:
    return MappingProxyType({model_id: bundle for ids, bundle in groups for model_id in ids})


TEXT_MODEL_CATALOG: Mapping[str, TextAdapterBundle] = _catalog(
    (_with_regions('anthropic.claude-3-5-sonnet-20241022-v2:0', 'us'), _CLAUDE),
    (_with_regions('anthropic.claude-3-5-haiku-20241022-v1:0', 'us'), _CLAUDE),
    (_with_regions('anthropic.claude-3-5-sonnet-20240620-v1:0', 'us', 'eu', 'apac'), _CLAUDE),
    (_with_regions('anthropic.claude-3-opus-20240229-v1:0', 'us'), _CLAUDE),
    (_with_regions('anthropic.claude-3-sonnet-20240229-v1:0', 'us', 'eu', 'apac'), _CLAUDE),
    (_with_regions('anthropic.claude-3-haiku-20240307-v1:0', 'us', 'eu', 'apac'), _CLAUDE),
    (['anthropic.claude-v2:1', 'anthropic.claude-v2', 'anthropic.claude-instant-v1'], _CLAUDE),
    (['amazon.titan-text-express-v1', 'amazon.titan-text-premier-v1:0'], _TITAN_TEXT),
    (
        [
            'meta.llama3-8b-instruct-v1:0',
            'meta.llama3-70b-instruct-v1:0',
            'meta.llama3-1-8b-instruct-v1:0',
            'meta.llama3-1-70b-instruct-v1:0',
            'meta.llama3-1-405b-instruct-v1:0',
            'us.meta.llama3-2-1b-instruct-v1:0',
            'us.meta.llama3-2-3b-instruct-v1:0',
            'us.meta.llama3-2-11b-instruct-v1:0',
            'us.meta.llama3-2-90b-instruct-v1:0',
        ],
        _LLAMA,
    ),
    (['mistral.mistral-7b-instruct-v0:2'], _MISTRAL_INSTRUCT),
    (['mistral.mixtral-8x7b-instruct-v0:1'], _MIXTRAL_INSTRUCT),
    (
        ['mistral.mistral-small-2402-v1:0', 'mistral.mistral-large-2402-v1:0', 'mistral.mistral-large-2407-v1:0'],
        _MISTRAL,
    ),
    (['cohere.command-r-v1:0', 'cohere.command-r-plus-v1:0'], _COMMANDR),
    (
        [
            *_with_regions('amazon.nova-pro-v1:0', 'us'),
            *_with_regions('amazon.nova-lite-v1:0', 'us'),
            *_with_regions('amazon.nova-micro-v1:0', 'us'),
        ],
        _NOVA,
    ),
)

_STABLE_DIFFUSION = ImageAdapterBundle(
    create_body=image.create_body_stable_diffusion,
    extract_output_image=image.extract_output_image_stable_diffusion,
)
_STABILITY_AI_2024 = ImageAdapterBundle(
    create_body=image.create_body_stability_ai_2024,
    extract_output_image=image.extract_output_image_stability_ai_2024,
)
_AMAZON_IMAGE = ImageAdapterBundle(
    create_body=image.create_body_amazon_image,
    extract_output_image=image.extract_output_image_amazon_image,
)

IMAGE_MODEL_CATALOG: Mapping[str, ImageAdapterBundle] = _catalog(
    (['stability.stable-diffusion-xl-v1'], _STABLE_DIFFUSION),
    (
        ['stability.sd3-large-v1:0', 'stability.stable-image-core-v1:0', 'stability.stable-image-ultra-v1:0'],
        _STABILITY_AI_2024,
    ),
    (
        ['amazon.titan-image-generator-v1', 'amazon.titan-image-generator-v2:0', 'amazon.nova-canvas-v1:0'],
        _AMAZON_IMAGE,
    ),
)

# Checked in order: "bilingual-rinna" also contains "rinna".
CUSTOM_ENDPOINT_TEMPLATES: tuple[tuple[str, PromptTemplate], ...] = (
    ('llama', LLAMA_PROMPT),
    ('bilingual-rinna', BILINGUAL_RINNA_PROMPT),
    ('rinna', RINNA_PROMPT),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def _narrow(catalog: Mapping[str, Any], enabled: Sequence[str], role: str) -> Mapping[str, Any]:
    if not enabled:
        return catalog
    missing = [model_id for model_id in enabled if model_id not in catalog]
    if missing:
        raise UnknownModelError(f'Unsupported {role} model(s): {", ".join(missing)}')
    return MappingProxyType({model_id: catalog[model_id] for model_id in enabled})


class ModelRegistry:
    """Immutable model id -> adapter bundle look-up for one deployment.

    Built once at process start from a `DispatchConfig`; safe for concurrent
    reads. An empty model list in the config enables the whole catalog.
    """

    def __init__(
        self,
        config: DispatchConfig | None = None,
        *,
        text_catalog: Mapping[str, TextAdapterBundle] = TEXT_MODEL_CATALOG,
        image_catalog: Mapping[str, ImageAdapterBundle] = IMAGE_MODEL_CATALOG,
    ) -> None:
        self.config: DispatchConfig = config or DispatchConfig()
        self._text = _narrow(text_catalog, self.config.text_model_ids, 'text generation')
        self._image = _narrow(image_catalog, self.config.image_model_ids, 'image generation')
        logger.debug('Model registry built: %d text, %d image models', len(self._text), len(self._image))

    def resolve_text(self, model_id: str) -> TextAdapterBundle:
        """Return the text adapter bundle registered for model_id.

        Raises
        ------
        UnknownModelError
            If model_id is not an enabled text generation model.

        """
        try:
            return self._text[model_id]
        except KeyError as exc:
            raise UnknownModelError(f'Unknown text generation model: {model_id}') from exc

    def resolve_image(self, model_id: str) -> ImageAdapterBundle:
        """Return the image adapter bundle registered for model_id."""
        try:
            return self._image[model_id]
        except KeyError as exc:
            raise UnknownModelError(f'Unknown image generation model: {model_id}') from exc

    @staticmethod
    def resolve_custom_endpoint_template(endpoint_name: str) -> PromptTemplate:
        """Return the prompt template whose family name occurs in endpoint_name.

        Raises
        ------
        InvalidModelError
            If no known family name occurs in endpoint_name.

        """
        for family, template in CUSTOM_ENDPOINT_TEMPLATES:
            if family in endpoint_name:
                return template
        raise InvalidModelError(f'Invalid model name: {endpoint_name}')

    def text_models(self) -> list[str]:
        """Return the enabled text model ids (for introspection)."""
        return list(self._text)

    def image_models(self) -> list[str]:
        """Return the enabled image model ids (for introspection)."""
        return list(self._image)
