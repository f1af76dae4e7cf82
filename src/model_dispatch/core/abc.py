"""core.abc

Abstract transport that executes provider requests built by the dispatcher.

Design goals
============
1. **Opaque payloads** - a transport receives the keyword arguments produced by
    `registry.dispatcher.ModelDispatcher` and returns the provider's raw reply.
    It never inspects or rewrites them.
2. **Built-in retry** - the public methods are wrapped in the `with_retry()`
    decorator so every transport inherits back-off behaviour by default.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from model_dispatch.core.retry import RetryStrategy, with_retry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


class AbstractTransport(ABC):
    """Provider-independent transport interface."""

    # ---------------------------------------------------------------------
    # Construction
    # ---------------------------------------------------------------------

    def __init__(self, *, retry_strategy: RetryStrategy | None = None) -> None:
        self._retry_strategy: RetryStrategy = retry_strategy or RetryStrategy(
            max_attempts=5,
            base_backoff_sec=1.0,
            max_backoff_sec=60.0,
            jitter=True,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def invoke(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Execute a single-shot text request.

        Subclasses **must not** override this - override `_converse()` instead.
        """
        return with_retry(self._retry_strategy)(self._converse)(request)

    def invoke_stream(self, request: Mapping[str, Any]) -> Iterator[dict[str, Any]]:
        """Execute a streaming text request and yield events in arrival order.

        Only opening the stream is retried; an interrupted stream simply ends.
        """
        events = with_retry(self._retry_strategy)(self._converse_stream)(request)
        yield from events

    def invoke_image(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Execute an image generation request and return the decoded JSON body."""
        return with_retry(self._retry_strategy)(self._invoke_model)(request)

    # ------------------------------------------------------------------
    # Methods to implement in concrete transports
    # ------------------------------------------------------------------

    @abstractmethod
    def _converse(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Provider-specific **blocking** text call."""

    @abstractmethod
    def _converse_stream(self, request: Mapping[str, Any]) -> Iterable[dict[str, Any]]:
        """Open a provider stream and return its event iterable."""

    @abstractmethod
    def _invoke_model(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Provider-specific **blocking** image call."""

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f'<{self.__class__.__name__}>'
