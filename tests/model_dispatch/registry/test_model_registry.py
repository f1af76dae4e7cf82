from __future__ import annotations

import pytest

from model_dispatch.adapters import converse, image
from model_dispatch.core.config import DispatchConfig
from model_dispatch.core.exceptions import InvalidModelError, UnknownModelError
from model_dispatch.params.inference_params import (
    CLAUDE_DEFAULT_PARAMS,
    MIXTRAL_DEFAULT_PARAMS,
    TITAN_TEXT_DEFAULT_PARAMS,
)
from model_dispatch.params.prompt_templates import BILINGUAL_RINNA_PROMPT, LLAMA_PROMPT, RINNA_PROMPT
from model_dispatch.registry.model_registry import IMAGE_MODEL_CATALOG, TEXT_MODEL_CATALOG, ModelRegistry


def test_resolve_text_system_capable() -> None:
    bundle = ModelRegistry().resolve_text('us.anthropic.claude-3-5-sonnet-20241022-v2:0')
    assert bundle.default_params == CLAUDE_DEFAULT_PARAMS
    assert bundle.create_request is converse.create_converse_input
    assert bundle.create_stream_request is converse.create_converse_stream_input


@pytest.mark.parametrize(
    ('model_id', 'defaults'),
    [
        ('amazon.titan-text-premier-v1:0', TITAN_TEXT_DEFAULT_PARAMS),
        ('mistral.mixtral-8x7b-instruct-v0:1', MIXTRAL_DEFAULT_PARAMS),
    ],
)
def test_resolve_text_without_system_context(model_id: str, defaults: object) -> None:
    bundle = ModelRegistry().resolve_text(model_id)
    assert bundle.default_params == defaults
    assert bundle.create_request is converse.create_converse_input_without_system_context


def test_resolve_requires_exact_match() -> None:
    registry = ModelRegistry()
    with pytest.raises(UnknownModelError):
        registry.resolve_text('anthropic.claude-3-haiku')
    with pytest.raises(UnknownModelError):
        registry.resolve_text('ANTHROPIC.CLAUDE-3-HAIKU-20240307-V1:0')


def test_text_and_image_registries_are_separate() -> None:
    registry = ModelRegistry()
    assert registry.resolve_image('amazon.nova-canvas-v1:0').create_body is image.create_body_amazon_image
    with pytest.raises(UnknownModelError):
        registry.resolve_text('amazon.nova-canvas-v1:0')
    with pytest.raises(UnknownModelError):
        registry.resolve_image('amazon.nova-pro-v1:0')


def test_empty_config_enables_whole_catalog() -> None:
    registry = ModelRegistry(DispatchConfig())
    assert registry.text_models() == list(TEXT_MODEL_CATALOG)
    assert registry.image_models() == list(IMAGE_MODEL_CATALOG)


def test_config_narrows_registry() -> None:
    config = DispatchConfig(
        text_model_ids=('amazon.nova-lite-v1:0',),
        image_model_ids=('stability.sd3-large-v1:0',),
    )
    registry = ModelRegistry(config)

    assert registry.text_models() == ['amazon.nova-lite-v1:0']
    assert registry.resolve_image('stability.sd3-large-v1:0').create_body is image.create_body_stability_ai_2024
    with pytest.raises(UnknownModelError):
        registry.resolve_text('amazon.nova-pro-v1:0')


def test_config_with_unsupported_model_fails_at_build() -> None:
    with pytest.raises(UnknownModelError, match='no-such-model'):
        ModelRegistry(DispatchConfig(text_model_ids=('no-such-model',)))


@pytest.mark.parametrize(
    ('endpoint', 'template'),
    [
        ('elyza-llama-2-jp', LLAMA_PROMPT),
        ('my-bilingual-rinna-4b', BILINGUAL_RINNA_PROMPT),
        ('japanese-rinna-3-6b', RINNA_PROMPT),
        # llama が最優先
        ('llama-bilingual-rinna', LLAMA_PROMPT),
    ],
)
def test_custom_endpoint_template(endpoint: str, template: object) -> None:
    assert ModelRegistry.resolve_custom_endpoint_template(endpoint) is template


def test_custom_endpoint_unknown_family() -> None:
    with pytest.raises(InvalidModelError):
        ModelRegistry.resolve_custom_endpoint_template('falcon-40b')


def test_catalog_is_read_only() -> None:
    with pytest.raises(TypeError):
        TEXT_MODEL_CATALOG['new-model'] = TEXT_MODEL_CATALOG['amazon.nova-pro-v1:0']  # type: ignore[index]
