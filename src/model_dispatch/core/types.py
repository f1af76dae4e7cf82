"""core.types

Shared DTOs and enums used throughout *model_dispatch*.

These models live in the **core** layer so that *adapters*, *params* and
*registry* can depend on them without causing circular imports. Every model is
frozen: a request is built from them once and they are never mutated.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Model identity
# ---------------------------------------------------------------------------


class ModelKind(StrEnum):
    bedrock = 'bedrock'  # managed model API
    sagemaker = 'sagemaker'  # operator-named custom endpoint
    agent = 'agent'


class ModelIdentity(BaseModel):
    """Which backend a call targets and under which identifier."""

    kind: ModelKind = ModelKind.bedrock
    model_id: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class Role(StrEnum):
    system = 'system'
    user = 'user'
    assistant = 'assistant'


class AttachmentKind(StrEnum):
    image = 'image'
    document = 'document'
    video = 'video'


class AttachmentEncoding(StrEnum):
    base64 = 'base64'  # inline payload
    s3 = 's3'  # remote object reference (uri)


class Attachment(BaseModel):
    """Binary payload attached to a message (image, document or video)."""

    kind: AttachmentKind
    encoding: AttachmentEncoding = AttachmentEncoding.base64
    media_type: str
    name: str = ''
    data: str = Field(..., description='base64 text or an s3:// uri, depending on encoding')

    model_config = ConfigDict(frozen=True)

    @property
    def subtype(self) -> str:
        """``image/png`` -> ``png``."""
        return self.media_type.split('/')[-1]


class Message(BaseModel):
    """Single message of a canonical conversation."""

    role: Role
    content: str = ''
    attachments: tuple[Attachment, ...] = ()

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Inference parameters
# ---------------------------------------------------------------------------


class InferenceParams(BaseModel):
    """Fully specified inference parameters of one model family."""

    max_tokens: int = Field(..., gt=0)
    temperature: float = Field(..., ge=0.0, le=1.0)
    top_p: float = Field(..., gt=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    def to_converse(self) -> dict[str, int | float]:
        """Render as the ``inferenceConfig`` block of a Converse call."""
        return {'maxTokens': self.max_tokens, 'temperature': self.temperature, 'topP': self.top_p}


class InferenceParamsOverride(BaseModel):
    """Per-use-case adjustment; unset fields keep the family default."""

    max_tokens: int | None = Field(None, gt=0)
    temperature: float | None = Field(None, ge=0.0, le=1.0)
    top_p: float | None = Field(None, gt=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Guardrails
# ---------------------------------------------------------------------------


class GuardrailConfig(BaseModel):
    """Content-safety guardrail attached to Converse calls."""

    identifier: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    # Traces are heavy and the application has no way to display them.
    trace: str = 'disabled'
    # Async lets harmful output through in theory, but in practice the guardrail
    # has only ever intervened on the input, before any token is streamed.
    stream_processing_mode: str = 'async'

    model_config = ConfigDict(frozen=True)

    def to_converse(self) -> dict[str, str]:
        return {
            'guardrailIdentifier': self.identifier,
            'guardrailVersion': self.version,
            'trace': self.trace,
        }

    def to_converse_stream(self) -> dict[str, str]:
        return {**self.to_converse(), 'streamProcessingMode': self.stream_processing_mode}


# ---------------------------------------------------------------------------
# Image generation
# ---------------------------------------------------------------------------


class MaskMode(StrEnum):
    inpainting = 'INPAINTING'
    outpainting = 'OUTPAINTING'


class PromptEntry(BaseModel):
    """Weighted prompt; a negative weight marks the negative prompt."""

    text: str
    weight: float = 1.0

    model_config = ConfigDict(frozen=True)


class ImageGenerationParams(BaseModel):
    """Provider-agnostic image generation request."""

    text_prompt: tuple[PromptEntry, ...] = ()
    seed: int = Field(0, ge=0)
    steps: int = Field(50, gt=0)
    cfg_scale: float = 7.0
    width: int = 1024
    height: int = 1024
    style_preset: str | None = None
    init_image: str | None = None
    mask_image: str | None = None
    mask_mode: MaskMode | None = None
    mask_prompt: str | None = None
    aspect_ratio: str | None = None
    image_strength: float | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def positive_prompt(self) -> str | None:
        """Text of the first entry with a non-negative weight."""
        return next((p.text for p in self.text_prompt if p.weight >= 0), None)

    @property
    def negative_prompt(self) -> str | None:
        """Text of the first entry with a negative weight."""
        return next((p.text for p in self.text_prompt if p.weight < 0), None)
