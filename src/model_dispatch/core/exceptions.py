"""core.exceptions

Centralised exception hierarchy for *model_dispatch*.

Each error carries an `http_status` attribute so that the API handlers calling
this package can translate exceptions to HTTP responses *without* scattering
status-code logic throughout adapter code.

Adapter errors are raised synchronously by the call that produced them and are
never retried here. Only the transport layer retries (see `core.retry`).
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Mapping


# Shown to users when a Stability model rejects a prompt because of its language.
PROMPT_LANGUAGE_REJECTED_MESSAGE = '日本語のプロンプトには対応していません'


# ---------------------------------------------------------------------------
# Base mixin with HTTP status information
# ---------------------------------------------------------------------------


class ModelDispatchError(Exception):
    """Base class for all *model_dispatch* domain errors."""

    #: Default HTTP status if not overridden by subclass.
    http_status: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__name__)

    def to_json(self) -> dict[str, dict[str, str]]:
        """Unified error body for API handlers."""
        return {'error': {'type': self.__class__.__name__, 'message': str(self)}}


# ---------------------------------------------------------------------------
# Registry / caller errors
# ---------------------------------------------------------------------------


class UnknownModelError(ModelDispatchError):
    """Raised when no adapter bundle is registered under a model id."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST  # 400


class InvalidModelError(ModelDispatchError):
    """Raised when a custom endpoint name matches no prompt template family."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST  # 400


class MissingPromptError(ModelDispatchError):
    """Raised when a provider requires a positive prompt and none was given."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST  # 400


# ---------------------------------------------------------------------------
# Provider response errors
# ---------------------------------------------------------------------------


class ProviderFailure(ModelDispatchError):
    """The provider's own response reports a failed generation."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_GATEWAY  # 502


class ContentFiltered(ModelDispatchError):
    """The provider stopped generation with a policy finish reason."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST  # 400

    def __init__(self, reason: str, *, prompt_language_rejected: bool = False) -> None:
        self.reason = reason
        self.prompt_language_rejected = prompt_language_rejected
        message = f'{reason}: {PROMPT_LANGUAGE_REJECTED_MESSAGE}' if prompt_language_rejected else reason
        super().__init__(message)


class UnsupportedResponseShape(ModelDispatchError):
    """Response does not match the adapter that built the request (wiring defect)."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR  # 500


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class RateLimitExceededError(ModelDispatchError):
    """Raised when the provider throttles a call."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.TOO_MANY_REQUESTS  # 429


class ProviderClientError(ModelDispatchError):
    """Generic upstream provider error (e.g., validation failure or 5xx)."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.BAD_GATEWAY  # 502


class GenerationTimeoutError(ModelDispatchError):
    """Raised when retry attempts exceed maximum backoff window."""

    http_status: ClassVar[HTTPStatus] = HTTPStatus.GATEWAY_TIMEOUT  # 504


HTTP_STATUS_MAP: Mapping[type[ModelDispatchError], HTTPStatus] = {
    cls: cls.http_status
    for cls in (
        UnknownModelError,
        InvalidModelError,
        MissingPromptError,
        ProviderFailure,
        ContentFiltered,
        UnsupportedResponseShape,
        RateLimitExceededError,
        ProviderClientError,
        GenerationTimeoutError,
    )
}
