from __future__ import annotations

import io
import json
import time
from typing import TYPE_CHECKING, Any

import pytest
from botocore.exceptions import ClientError, EventStreamError

from model_dispatch.adapters.bedrock_transport import BedrockTransport, translate_client_error
from model_dispatch.core.exceptions import (
    GenerationTimeoutError,
    ProviderClientError,
    RateLimitExceededError,
    UnknownModelError,
)
from model_dispatch.core.retry import RetryStrategy

if TYPE_CHECKING:
    from collections.abc import Iterator

FAST_RETRY = RetryStrategy(max_attempts=3, base_backoff_sec=0, jitter=False)


def _client_error(code: str, operation: str = 'Converse') -> ClientError:
    return ClientError({'Error': {'Code': code, 'Message': f'{code} happened'}}, operation)


class StubBedrockClient:
    """boto3 bedrock-runtime クライアントの代わりに使う簡易スタブ."""

    def __init__(self, *, failures: list[ClientError] | None = None) -> None:
        self.failures = list(failures or [])
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _record(self, operation: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((operation, kwargs))
        if self.failures:
            raise self.failures.pop(0)

    def converse(self, **kwargs: Any) -> dict[str, Any]:
        self._record('converse', kwargs)
        return {'output': {'message': {'content': [{'text': 'pong'}]}}}

    def converse_stream(self, **kwargs: Any) -> dict[str, Any]:
        self._record('converse_stream', kwargs)
        return {
            'stream': iter(
                [
                    {'messageStart': {'role': 'assistant'}},
                    {'contentBlockDelta': {'delta': {'text': 'po'}}},
                    {'contentBlockDelta': {'delta': {'text': 'ng'}}},
                    {'messageStop': {'stopReason': 'end_turn'}},
                ],
            ),
        }

    def invoke_model(self, **kwargs: Any) -> dict[str, Any]:
        self._record('invoke_model', kwargs)
        return {'body': io.BytesIO(json.dumps({'images': ['IMG='], 'error': None}).encode())}


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(time, 'sleep', lambda *_: None)


def test_invoke_passes_request_through() -> None:
    client = StubBedrockClient()
    transport = BedrockTransport(client=client, retry_strategy=FAST_RETRY)
    request = {'modelId': 'amazon.nova-pro-v1:0', 'messages': []}

    response = transport.invoke(request)

    assert response['output']['message']['content'][0]['text'] == 'pong'
    assert client.calls == [('converse', request)]


def test_invoke_stream_yields_events_in_order() -> None:
    transport = BedrockTransport(client=StubBedrockClient(), retry_strategy=FAST_RETRY)
    events = list(transport.invoke_stream({'modelId': 'm'}))
    assert [next(iter(e)) for e in events] == ['messageStart', 'contentBlockDelta', 'contentBlockDelta', 'messageStop']


def test_invoke_image_decodes_body() -> None:
    transport = BedrockTransport(client=StubBedrockClient(), retry_strategy=FAST_RETRY)
    response = transport.invoke_image({'modelId': 'amazon.nova-canvas-v1:0', 'body': '{}'})
    assert response == {'images': ['IMG='], 'error': None}


def test_throttling_is_retried() -> None:
    client = StubBedrockClient(failures=[_client_error('ThrottlingException')])
    transport = BedrockTransport(client=client, retry_strategy=FAST_RETRY)

    transport.invoke({'modelId': 'm'})

    assert len(client.calls) == 2  # noqa: PLR2004


def test_persistent_throttling_times_out() -> None:
    client = StubBedrockClient(failures=[_client_error('ThrottlingException')] * 3)
    transport = BedrockTransport(client=client, retry_strategy=FAST_RETRY)

    with pytest.raises(GenerationTimeoutError):
        transport.invoke({'modelId': 'm'})
    assert len(client.calls) == 3  # noqa: PLR2004


def test_validation_error_is_not_retried() -> None:
    client = StubBedrockClient(failures=[_client_error('ValidationException')])
    transport = BedrockTransport(client=client, retry_strategy=FAST_RETRY)

    with pytest.raises(ProviderClientError):
        transport.invoke({'modelId': 'm'})
    assert len(client.calls) == 1


@pytest.mark.parametrize(
    ('code', 'expected'),
    [
        ('ThrottlingException', RateLimitExceededError),
        ('ModelTimeoutException', ConnectionError),
        ('ResourceNotFoundException', UnknownModelError),
        ('AccessDeniedException', ProviderClientError),
    ],
)
def test_translate_client_error(code: str, expected: type[Exception]) -> None:
    assert isinstance(translate_client_error(_client_error(code)), expected)


def _broken_stream(code: str) -> Iterator[dict[str, Any]]:
    yield {'messageStart': {'role': 'assistant'}}
    yield {'contentBlockDelta': {'delta': {'text': 'par'}}}
    raise EventStreamError({'Error': {'Code': code, 'Message': f'{code} mid-stream'}}, 'ConverseStream')


class BrokenStreamClient(StubBedrockClient):
    """ストリームの途中でエラーを返すスタブ."""

    def __init__(self, code: str) -> None:
        super().__init__()
        self.code = code

    def converse_stream(self, **kwargs: Any) -> dict[str, Any]:
        self._record('converse_stream', kwargs)
        return {'stream': _broken_stream(self.code)}


@pytest.mark.parametrize(
    ('code', 'expected'),
    [
        ('throttlingException', RateLimitExceededError),
        ('modelStreamErrorException', ProviderClientError),
        ('validationException', ProviderClientError),
        ('modelTimeoutException', GenerationTimeoutError),
    ],
)
def test_mid_stream_error_is_translated(code: str, expected: type[Exception]) -> None:
    client = BrokenStreamClient(code)
    transport = BedrockTransport(client=client, retry_strategy=FAST_RETRY)
    received: list[dict[str, Any]] = []

    with pytest.raises(expected):  # noqa: PT012
        for event in transport.invoke_stream({'modelId': 'm'}):
            received.append(event)

    # 途中までのイベントは届き、再試行はしない
    assert len(client.calls) == 1
    assert [next(iter(e)) for e in received] == ['messageStart', 'contentBlockDelta']


def test_camel_case_stream_codes_are_recognised() -> None:
    error = EventStreamError({'Error': {'Code': 'throttlingException', 'Message': 'slow down'}}, 'ConverseStream')
    assert isinstance(translate_client_error(error), RateLimitExceededError)
