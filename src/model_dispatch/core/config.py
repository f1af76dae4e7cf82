"""core.config

Deployment configuration, read once at process start.

The values used to live in module-level globals read straight from the
environment. They are now gathered into one immutable `DispatchConfig` that is
handed to `registry.model_registry.ModelRegistry`, so nothing below the
registry ever touches `os.environ`.
"""

from __future__ import annotations

import json
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from model_dispatch.core.types import GuardrailConfig


class DispatchConfig(BaseModel):
    """Enabled models and optional guardrail of one deployment."""

    text_model_ids: tuple[str, ...] = ()
    image_model_ids: tuple[str, ...] = ()
    guardrail_identifier: str | None = None
    guardrail_version: str | None = None
    guardrail_stream_processing_mode: str = Field('async', pattern=r'^(sync|async)$')
    region: str | None = None

    model_config = ConfigDict(frozen=True)

    # --------------------------- Validators ---------------------------

    @field_validator('text_model_ids', 'image_model_ids', mode='before')
    @classmethod
    def _strip_ids(cls, v: object) -> tuple[str, ...]:
        """Trim whitespace and drop empty entries."""
        if isinstance(v, str):
            v = json.loads(v)
        return tuple(name.strip() for name in v if name and name.strip())  # type: ignore[union-attr]

    # --------------------------- Constructors -------------------------

    @classmethod
    def from_env(cls) -> DispatchConfig:
        """Build the config from environment variables (and a ``.env`` file).

        ``MODEL_IDS`` and ``IMAGE_GENERATION_MODEL_IDS`` hold JSON lists.
        """
        load_dotenv()
        return cls(
            text_model_ids=os.getenv('MODEL_IDS', '[]'),
            image_model_ids=os.getenv('IMAGE_GENERATION_MODEL_IDS', '[]'),
            guardrail_identifier=os.getenv('GUARDRAIL_IDENTIFIER') or None,
            guardrail_version=os.getenv('GUARDRAIL_VERSION') or None,
            guardrail_stream_processing_mode=os.getenv('GUARDRAIL_STREAM_PROCESSING_MODE', 'async'),
            region=os.getenv('MODEL_REGION') or os.getenv('AWS_REGION') or None,
        )

    # --------------------------- Derived values -----------------------

    @property
    def guardrail(self) -> GuardrailConfig | None:
        """Guardrail to attach, or None unless identifier *and* version are set."""
        if self.guardrail_identifier is None or self.guardrail_version is None:
            return None
        return GuardrailConfig(
            identifier=self.guardrail_identifier,
            version=self.guardrail_version,
            stream_processing_mode=self.guardrail_stream_processing_mode,
        )

    @property
    def default_text_model_id(self) -> str | None:
        return self.text_model_ids[0] if self.text_model_ids else None

    @property
    def default_image_model_id(self) -> str | None:
        return self.image_model_ids[0] if self.image_model_ids else None
