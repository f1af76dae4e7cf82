"""adapters.image

Request bodies and response extractors for image generation models reached
through Bedrock ``invoke_model``.

Three incompatible body shapes exist:

* legacy diffusion (Stable Diffusion XL);
* Stability AI 2024 models (SD3 Large, Stable Image Core/Ultra);
* first-party image models (Titan Image Generator, Nova Canvas).

Extractors tell the response shapes apart by the fields they carry, because
the two Stability responses have no type tag. If a provider adds or renames
one of those fields, the checks below are the place to look.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from model_dispatch.core.exceptions import (
    ContentFiltered,
    MissingPromptError,
    ProviderFailure,
    UnsupportedResponseShape,
)
from model_dispatch.core.types import MaskMode

if TYPE_CHECKING:
    from collections.abc import Mapping

    from model_dispatch.core.types import ImageGenerationParams

# Largest seed accepted by Titan Image Generator.
TITAN_IMAGE_SEED_CEILING = 214783648
MIN_SIMILARITY_STRENGTH = 0.2
PROMPT_FILTER_REASON = 'Filter reason: prompt'


def _first(items: list[Any] | None) -> Any:
    """First generated artifact; an empty list is a failed generation."""
    if not items:
        raise ProviderFailure('No image returned')
    return items[0]


# ---------------------------------------------------------------------------
# Legacy diffusion
# ---------------------------------------------------------------------------


def create_body_stable_diffusion(params: ImageGenerationParams) -> dict[str, Any]:
    body: dict[str, Any] = {
        'text_prompts': [p.model_dump() for p in params.text_prompt],
        'cfg_scale': params.cfg_scale,
        'seed': params.seed,
        'steps': params.steps,
        'height': params.height,
        'width': params.width,
    }
    if params.style_preset:
        body['style_preset'] = params.style_preset
    # any non-zero strength corrupts inpainting / outpainting
    strength = 0 if params.mask_image else params.image_strength
    if strength is not None:
        body['image_strength'] = strength

    if params.init_image:
        body['init_image'] = params.init_image
        if params.mask_image:
            body['mask_image'] = params.mask_image
            body['mask_source'] = (
                'MASK_IMAGE_BLACK' if params.mask_mode is MaskMode.inpainting else 'MASK_IMAGE_WHITE'
            )
    return body


def extract_output_image_stable_diffusion(response: Mapping[str, Any]) -> str:
    if 'result' not in response:
        raise UnsupportedResponseShape('Unexpected response type for Stable Diffusion')
    if response['result'] != 'success':
        raise ProviderFailure(f'Failed to invoke model: {response["result"]}')
    return _first(response['artifacts'])['base64']


# ---------------------------------------------------------------------------
# Stability AI 2024 models
# ---------------------------------------------------------------------------


def create_body_stability_ai_2024(params: ImageGenerationParams) -> dict[str, Any]:
    positive = params.positive_prompt
    if not positive:
        raise MissingPromptError('Positive prompt is required')

    body: dict[str, Any] = {
        # these models have no style field, the preset goes into the prompt
        'prompt': f'{positive}, {params.style_preset}' if params.style_preset else positive,
        'seed': params.seed,
        'output_format': 'png',
    }
    # aspect ratio cannot be combined with image-to-image
    if params.aspect_ratio and not params.init_image:
        body['aspect_ratio'] = params.aspect_ratio
    if params.negative_prompt:
        body['negative_prompt'] = params.negative_prompt
    if params.init_image:
        body['image'] = params.init_image
        body['mode'] = 'image-to-image'
        if params.image_strength is not None:
            body['strength'] = params.image_strength
    return body


def extract_output_image_stability_ai_2024(response: Mapping[str, Any]) -> str:
    if 'finish_reasons' not in response:
        raise UnsupportedResponseShape('Unexpected response type for Stability AI 2024 Model')
    reasons = response['finish_reasons']
    reason = reasons[0] if reasons else None
    if reason is not None:
        raise ContentFiltered(reason, prompt_language_rejected=reason == PROMPT_FILTER_REASON)
    return _first(response['images'])


# ---------------------------------------------------------------------------
# First-party image models
# ---------------------------------------------------------------------------


def _amazon_prompt_params(params: ImageGenerationParams) -> dict[str, Any]:
    text = params.positive_prompt or ''
    if params.style_preset:
        text = f'{text}, {params.style_preset}'
    prompt_params: dict[str, Any] = {'text': text}
    if params.negative_prompt:
        prompt_params['negativeText'] = params.negative_prompt
    return prompt_params


def _amazon_mask_params(params: ImageGenerationParams) -> dict[str, Any]:
    mask_params: dict[str, Any] = {'image': params.init_image}
    if params.mask_image:
        mask_params['maskImage'] = params.mask_image
    if params.mask_prompt:
        mask_params['maskPrompt'] = params.mask_prompt
    return mask_params


def create_body_amazon_image(params: ImageGenerationParams) -> dict[str, Any]:
    generation_config = {
        'numberOfImages': 1,
        'quality': 'standard',
        'height': params.height,
        'width': params.width,
        'cfgScale': params.cfg_scale,
        'seed': params.seed % TITAN_IMAGE_SEED_CEILING,
    }
    prompt_params = _amazon_prompt_params(params)

    if params.init_image and params.mask_mode is None:
        return {
            'taskType': 'IMAGE_VARIATION',
            'imageVariationParams': {
                **prompt_params,
                'images': [params.init_image],
                'similarityStrength': max(params.image_strength or MIN_SIMILARITY_STRENGTH, MIN_SIMILARITY_STRENGTH),
            },
            'imageGenerationConfig': generation_config,
        }
    if params.init_image and params.mask_mode is MaskMode.inpainting:
        return {
            'taskType': 'INPAINTING',
            'inPaintingParams': {**prompt_params, **_amazon_mask_params(params)},
            'imageGenerationConfig': generation_config,
        }
    if params.init_image and params.mask_mode is MaskMode.outpainting:
        return {
            'taskType': 'OUTPAINTING',
            'outPaintingParams': {
                **prompt_params,
                **_amazon_mask_params(params),
                'outPaintingMode': 'DEFAULT',
            },
            'imageGenerationConfig': generation_config,
        }
    return {
        'taskType': 'TEXT_IMAGE',
        'textToImageParams': prompt_params,
        'imageGenerationConfig': generation_config,
    }


def extract_output_image_amazon_image(response: Mapping[str, Any]) -> str:
    # Stability 2024 responses carry `images` too; `finish_reasons` tells them apart.
    if 'images' not in response or 'finish_reasons' in response:
        raise UnsupportedResponseShape('Unexpected response type for Amazon Image')
    if response.get('error'):
        raise ProviderFailure(response['error'])
    return _first(response['images'])
