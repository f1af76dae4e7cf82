"""params.inference_params

Per-model-family default inference parameters, per-use-case overrides, and the
two-layer resolution that combines them.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from model_dispatch.core.id_normalizer import normalize_id
from model_dispatch.core.types import InferenceParams, InferenceParamsOverride

if TYPE_CHECKING:
    from collections.abc import Mapping

# ---------------------------------------------------------------------------
# Family defaults
# ---------------------------------------------------------------------------

CLAUDE_DEFAULT_PARAMS = InferenceParams(max_tokens=4096, temperature=0.6, top_p=0.8)

# Titan documents 3072 max tokens but Converse only accepts up to 3000.
TITAN_TEXT_DEFAULT_PARAMS = InferenceParams(max_tokens=3000, temperature=0.7, top_p=1.0)

LLAMA_DEFAULT_PARAMS = InferenceParams(max_tokens=2048, temperature=0.6, top_p=0.99)

MISTRAL_DEFAULT_PARAMS = InferenceParams(max_tokens=8192, temperature=0.6, top_p=0.99)

MIXTRAL_DEFAULT_PARAMS = InferenceParams(max_tokens=4096, temperature=0.6, top_p=0.99)

COMMANDR_DEFAULT_PARAMS = InferenceParams(max_tokens=4000, temperature=0.3, top_p=0.75)

NOVA_DEFAULT_PARAMS = InferenceParams(max_tokens=5120, temperature=0.7, top_p=0.9)

# ---------------------------------------------------------------------------
# Use-case overrides (keyed by normalized id)
# ---------------------------------------------------------------------------

USECASE_DEFAULT_PARAMS: Mapping[str, InferenceParamsOverride] = MappingProxyType(
    {
        '/rag': InferenceParamsOverride(temperature=0.0),
    },
)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def merge_inference_params(default: InferenceParams, override: InferenceParamsOverride | None) -> InferenceParams:
    """Overlay override on default field by field.

    Fields left unset in override keep the default value.
    """
    if override is None:
        return default
    return InferenceParams(
        max_tokens=default.max_tokens if override.max_tokens is None else override.max_tokens,
        temperature=default.temperature if override.temperature is None else override.temperature,
        top_p=default.top_p if override.top_p is None else override.top_p,
    )


def resolve_inference_params(
    use_case_id: str,
    default: InferenceParams,
    usecase_params: Mapping[str, InferenceParamsOverride],
) -> InferenceParams:
    """Return the parameters for a call made from use_case_id."""
    return merge_inference_params(default, usecase_params.get(normalize_id(use_case_id)))
