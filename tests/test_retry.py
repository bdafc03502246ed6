"""Tests for retry classification and backoff decisions."""

import httpx
import pytest

from transfer.retry import GIVE_UP, FailureKind, RetryPolicy, classify_exception, classify_status


class TestClassification:
    """Test mapping of statuses and transport errors to failure kinds."""

    @pytest.mark.parametrize('status,kind', [
        (400, FailureKind.CLIENT_ERROR),
        (401, FailureKind.AUTH),
        (403, FailureKind.AUTH),
        (404, FailureKind.NOT_FOUND),
        (408, FailureKind.TIMEOUT),
        (409, FailureKind.CLIENT_ERROR),
        (429, FailureKind.THROTTLED),
        (500, FailureKind.SERVER_ERROR),
        (503, FailureKind.SERVER_ERROR),
    ])
    def test_classify_status(self, status, kind):
        assert classify_status(status) is kind

    def test_success_is_not_a_failure(self):
        assert classify_status(200) is None
        assert classify_status(204) is None

    def test_classify_exception(self):
        request = httpx.Request('GET', 'http://testserver/')

        assert classify_exception(httpx.ReadTimeout('slow', request=request)) is FailureKind.TIMEOUT
        assert classify_exception(httpx.ConnectError('refused', request=request)) is FailureKind.CONNECTION

    def test_classify_exception_rejects_other_errors(self):
        with pytest.raises(TypeError):
            classify_exception(ValueError('not transport'))

    def test_retryable_kinds(self):
        retryable = {kind for kind in FailureKind if kind.retryable}

        assert retryable == {
            FailureKind.TIMEOUT,
            FailureKind.CONNECTION,
            FailureKind.SERVER_ERROR,
            FailureKind.THROTTLED,
        }


class TestRetryPolicy:
    """Test backoff schedule and attempt budget."""

    def test_default_schedule(self):
        policy = RetryPolicy()

        first = policy.decide(1, FailureKind.SERVER_ERROR)
        second = policy.decide(2, FailureKind.SERVER_ERROR)
        third = policy.decide(3, FailureKind.SERVER_ERROR)

        assert first.should_retry and first.delay == 1.0
        assert second.should_retry and second.delay == 2.0
        assert third is GIVE_UP

    @pytest.mark.parametrize('kind', [
        FailureKind.AUTH,
        FailureKind.NOT_FOUND,
        FailureKind.CLIENT_ERROR,
        FailureKind.INTEGRITY,
    ])
    def test_non_retryable_kinds_give_up_immediately(self, kind):
        assert not RetryPolicy().decide(1, kind).should_retry

    def test_delay_is_capped(self):
        policy = RetryPolicy(max_attempts=10, base_delay=10.0, backoff_multiplier=3.0, max_delay=30.0)

        assert policy.backoff(1) == 10.0
        assert policy.backoff(2) == 30.0
        assert policy.backoff(5) == 30.0

    def test_from_config(self, temp_config):
        temp_config.data.update({'max_attempts': 5, 'retry_base_delay': 0.5, 'retry_backoff_multiplier': 3})

        policy = RetryPolicy.from_config(temp_config)

        assert policy.max_attempts == 5
        assert policy.backoff(2) == 1.5

    def test_single_attempt_policy_never_retries(self):
        assert not RetryPolicy(max_attempts=1).decide(1, FailureKind.TIMEOUT).should_retry
