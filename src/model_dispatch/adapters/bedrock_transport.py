"""adapters.bedrock_transport

Concrete transport that executes dispatcher payloads against the
**Bedrock Runtime** API through boto3.

Payloads are passed to ``converse`` / ``converse_stream`` / ``invoke_model``
unchanged; this module only translates botocore errors into the
*model_dispatch* hierarchy so that the retry decorator can act on them.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import ClientError

from model_dispatch.core.abc import AbstractTransport
from model_dispatch.core.exceptions import (
    GenerationTimeoutError,
    ProviderClientError,
    RateLimitExceededError,
    UnknownModelError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from model_dispatch.core.retry import RetryStrategy

logger = logging.getLogger(__name__)

_THROTTLING_CODES = frozenset({'ThrottlingException', 'ServiceQuotaExceededException', 'TooManyRequestsException'})
_TIMEOUT_CODES = frozenset({'ModelTimeoutException', 'ServiceUnavailableException', 'ModelNotReadyException'})
_NOT_FOUND_CODES = frozenset({'ResourceNotFoundException'})


def translate_client_error(exc: ClientError) -> Exception:
    """Map a botocore ClientError to the matching domain error."""
    code = exc.response.get('Error', {}).get('Code', '')
    # stream events spell codes in camelCase (throttlingException)
    code = code[:1].upper() + code[1:]
    message = exc.response.get('Error', {}).get('Message', str(exc))
    if code in _THROTTLING_CODES:
        return RateLimitExceededError(message)
    if code in _TIMEOUT_CODES:
        # ConnectionError subclasses are retried by default
        return ConnectionError(f'{code}: {message}')
    if code in _NOT_FOUND_CODES:
        return UnknownModelError(message)
    return ProviderClientError(f'{code}: {message}' if code else message)


class BedrockTransport(AbstractTransport):
    """Transport for Bedrock Runtime (Converse and InvokeModel)."""

    # NOTE: boto3 resolves credentials from the usual AWS chain.

    def __init__(
        self,
        region: str | None = None,
        *,
        client: Any | None = None,
        retry_strategy: RetryStrategy | None = None,
    ) -> None:
        super().__init__(retry_strategy=retry_strategy)
        self._client = client or boto3.client('bedrock-runtime', region_name=region)

    def _call(self, operation: str, request: Mapping[str, Any]) -> dict[str, Any]:
        try:
            return getattr(self._client, operation)(**request)
        except ClientError as exc:
            logger.warning('Bedrock %s failed for %s: %s', operation, request.get('modelId'), exc)
            raise translate_client_error(exc) from exc

    def _converse(self, request: Mapping[str, Any]) -> dict[str, Any]:
        return self._call('converse', request)

    def _converse_stream(self, request: Mapping[str, Any]) -> Iterable[dict[str, Any]]:
        stream = self._call('converse_stream', request).get('stream') or ()
        return self._translate_stream_errors(stream, request.get('modelId'))

    @staticmethod
    def _translate_stream_errors(stream: Iterable[dict[str, Any]], model_id: str | None) -> Iterator[dict[str, Any]]:
        """Yield events, raising mid-stream EventStreamErrors as domain errors."""
        try:
            yield from stream
        except ClientError as exc:
            logger.warning('Bedrock stream for %s failed: %s', model_id, exc)
            error = translate_client_error(exc)
            # a started stream is not retried
            if isinstance(error, ConnectionError):
                error = GenerationTimeoutError(str(error))
            raise error from exc

    def _invoke_model(self, request: Mapping[str, Any]) -> dict[str, Any]:
        response = self._call('invoke_model', request)
        try:
            return json.loads(response['body'].read())
        except (KeyError, ValueError) as exc:
            raise ProviderClientError('Image model returned an unreadable body') from exc
