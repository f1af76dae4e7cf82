import time

import pytest
from botocore.exceptions import ClientError

from model_dispatch.adapters.bedrock_transport import translate_client_error
from model_dispatch.core.exceptions import (
    GenerationTimeoutError,
    MissingPromptError,
    ProviderFailure,
    RateLimitExceededError,
)
from model_dispatch.core.retry import RetryStrategy, with_retry

NO_WAIT = RetryStrategy(max_attempts=3, base_backoff_sec=0, jitter=False)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    # 実際には待たずに待機時間だけ記録する
    recorded: list[float] = []
    monkeypatch.setattr(time, 'sleep', recorded.append)
    return recorded


def test_backoff_doubles_until_ceiling() -> None:
    strategy = RetryStrategy(base_backoff_sec=0.5, max_backoff_sec=3.0, jitter=False)
    assert [strategy.compute_delay(n) for n in range(1, 6)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_jitter_adds_at_most_one_second() -> None:
    strategy = RetryStrategy(base_backoff_sec=2.0, jitter=True)
    assert all(2.0 <= strategy.compute_delay(1) <= 3.0 for _ in range(20))  # noqa: PLR2004


def test_throttled_call_recovers(sleeps: list[float]) -> None:
    strategy = RetryStrategy(max_attempts=4, base_backoff_sec=1.0, jitter=False)
    replies = iter([RateLimitExceededError('ThrottlingException'), ConnectionError('ModelTimeoutException'), 'ok'])

    @with_retry(strategy)
    def _converse() -> str:
        reply = next(replies)
        if isinstance(reply, Exception):
            raise reply
        return reply

    assert _converse() == 'ok'
    assert sleeps == [1.0, 2.0]


def test_model_timeouts_exhaust_into_generation_timeout(sleeps: list[float]) -> None:
    @with_retry(NO_WAIT)
    def _converse() -> None:
        error = ClientError({'Error': {'Code': 'ModelTimeoutException', 'Message': 'slow'}}, 'Converse')
        raise translate_client_error(error)

    with pytest.raises(GenerationTimeoutError) as exc_info:
        _converse()
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert len(sleeps) == NO_WAIT.max_attempts - 1


@pytest.mark.parametrize('error', [ProviderFailure('bad'), MissingPromptError('empty'), ValueError('x')])
def test_adapter_errors_are_not_retried(sleeps: list[float], error: Exception) -> None:
    calls = {'cnt': 0}

    @with_retry(NO_WAIT)
    def _fn() -> None:
        calls['cnt'] += 1
        raise error

    with pytest.raises(type(error)):
        _fn()
    assert calls['cnt'] == 1
    assert sleeps == []


def test_custom_retry_on(sleeps: list[float]) -> None:
    calls = {'cnt': 0}

    @with_retry(NO_WAIT, retry_on=(ProviderFailure,))
    def _fn() -> None:
        calls['cnt'] += 1
        raise ProviderFailure('flaky')

    with pytest.raises(GenerationTimeoutError):
        _fn()
    assert calls['cnt'] == NO_WAIT.max_attempts
