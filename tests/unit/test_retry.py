"""
Unit tests for retry logic with exponential backoff

Tests verify:
- Backoff delays, cap and jitter
- Exception filtering by type and by predicate
- Retry callbacks
- Transient table store failure detection
"""

from unittest.mock import Mock, patch

import pytest
import requests

from tablestore.errors import TableStoreError
from utils.retry import compute_delay, is_retryable_api_exception, retry_with_backoff

RATE_LIMITED = TableStoreError("list_records failed: rate limited", code=1254290, retryable=True)
NO_PERMISSION = TableStoreError("list_records failed: permission denied", code=2)


def _delays(mock_sleep):
    return [c.args[0] for c in mock_sleep.call_args_list]


class TestRetryWithBackoff:
    """Test retry_with_backoff decorator"""

    def test_first_attempt_success_never_sleeps(self):
        read = Mock(return_value={"items": []})

        with patch("time.sleep") as mock_sleep:
            result = retry_with_backoff(max_retries=3)(read)()

        assert result == {"items": []}
        assert read.call_count == 1
        mock_sleep.assert_not_called()

    def test_recovers_after_rate_limiting(self):
        read = Mock(side_effect=[RATE_LIMITED, RATE_LIMITED, {"items": ["rec1"]}])

        with patch("time.sleep"):
            result = retry_with_backoff(max_retries=3, retry_if=is_retryable_api_exception)(read)()

        assert result == {"items": ["rec1"]}
        assert read.call_count == 3

    def test_gives_up_after_max_retries(self):
        """The last failure propagates once retries are spent (initial + 2 retries)"""
        read = Mock(side_effect=requests.ConnectionError("reset by peer"))

        with patch("time.sleep"):
            with pytest.raises(requests.ConnectionError, match="reset by peer"):
                retry_with_backoff(max_retries=2)(read)()

        assert read.call_count == 3

    def test_zero_retries_calls_once(self):
        read = Mock(side_effect=TimeoutError("slow"))

        with pytest.raises(TimeoutError):
            retry_with_backoff(max_retries=0)(read)()

        assert read.call_count == 1

    def test_delays_grow_exponentially(self):
        read = Mock(side_effect=[TimeoutError(), TimeoutError(), TimeoutError(), "ok"])

        with patch("time.sleep") as mock_sleep:
            retry_with_backoff(max_retries=3, base_delay=0.5, jitter=False)(read)()

        assert _delays(mock_sleep) == [0.5, 1.0, 2.0]

    def test_delays_capped(self):
        read = Mock(side_effect=[TimeoutError(), TimeoutError(), "ok"])

        with patch("time.sleep") as mock_sleep:
            retry_with_backoff(max_retries=5, base_delay=10.0, max_delay=15.0, jitter=False)(read)()

        assert _delays(mock_sleep) == [10.0, 15.0]

    def test_jitter_stays_within_a_quarter(self):
        read = Mock(side_effect=[TimeoutError(), TimeoutError(), "ok"])

        with patch("time.sleep") as mock_sleep:
            retry_with_backoff(max_retries=3, base_delay=1.0, jitter=True)(read)()

        first, second = _delays(mock_sleep)
        assert 0.75 <= first <= 1.25
        assert 1.5 <= second <= 2.5

    def test_type_filter_rejects_other_errors(self):
        read = Mock(side_effect=KeyError("page_token"))
        decorated = retry_with_backoff(max_retries=3, retryable_exceptions=(ConnectionError,))(read)

        with pytest.raises(KeyError):
            decorated()

        assert read.call_count == 1

    def test_predicate_rejects_permanent_errors(self):
        read = Mock(side_effect=NO_PERMISSION)
        decorated = retry_with_backoff(max_retries=3, retry_if=is_retryable_api_exception)(read)

        with pytest.raises(TableStoreError, match="permission denied"):
            decorated()

        assert read.call_count == 1

    def test_on_retry_receives_attempt_exception_and_delay(self):
        on_retry = Mock()
        read = Mock(side_effect=[RATE_LIMITED, requests.Timeout("slow"), "ok"])

        with patch("time.sleep"):
            retry_with_backoff(max_retries=3, on_retry=on_retry)(read)()

        attempts = [c.args[0] for c in on_retry.call_args_list]
        errors = [type(c.args[1]) for c in on_retry.call_args_list]
        assert attempts == [1, 2]
        assert errors == [TableStoreError, requests.Timeout]
        assert all(isinstance(c.args[2], float) for c in on_retry.call_args_list)

    def test_failing_callback_does_not_stop_retries(self):
        read = Mock(side_effect=[ConnectionError("refused"), "ok"])

        with patch("time.sleep"):
            decorated = retry_with_backoff(max_retries=2, on_retry=Mock(side_effect=RuntimeError("sink down")))(read)
            assert decorated() == "ok"

    def test_arguments_passed_on_every_attempt(self):
        calls = []

        def list_page(table_id, page_token=None):
            calls.append((table_id, page_token))
            if len(calls) == 1:
                raise ConnectionError("reset")
            return f"{table_id}:{page_token}"

        with patch("time.sleep"):
            result = retry_with_backoff(max_retries=2)(list_page)("tblOrders0001", page_token="p2")

        assert result == "tblOrders0001:p2"
        assert calls == [("tblOrders0001", "p2")] * 2

    def test_preserves_function_metadata(self):
        @retry_with_backoff(max_retries=3)
        def list_fields():
            """List every field"""
            return []

        assert list_fields.__name__ == "list_fields"
        assert list_fields.__doc__ == "List every field"


class TestComputeDelay:
    """Test compute_delay"""

    def test_without_jitter(self):
        assert compute_delay(0, 1.0, 60.0, jitter=False) == 1.0
        assert compute_delay(3, 1.0, 60.0, jitter=False) == 8.0
        assert compute_delay(10, 1.0, 60.0, jitter=False) == 60.0

    def test_jitter_floor(self):
        assert compute_delay(0, 0.01, 60.0, jitter=True) >= 0.1


class TestIsRetryableApiException:
    """Test is_retryable_api_exception function"""

    def test_declared_flag_wins(self):
        assert is_retryable_api_exception(RATE_LIMITED) is True
        assert is_retryable_api_exception(NO_PERMISSION) is False

    def test_transport_errors_retryable(self):
        assert is_retryable_api_exception(requests.ConnectionError("reset")) is True
        assert is_retryable_api_exception(requests.Timeout("slow")) is True
        assert is_retryable_api_exception(ConnectionError("refused")) is True
        assert is_retryable_api_exception(TimeoutError("timed out")) is True

    @pytest.mark.parametrize("status,expected", [
        (429, True),
        (500, True),
        (503, True),
        (400, False),
        (403, False),
        (404, False),
    ])
    def test_http_errors_by_status(self, status, expected):
        error = requests.HTTPError(f"HTTP {status}", response=Mock(status_code=status))

        assert is_retryable_api_exception(error) is expected

    def test_other_errors_not_retryable(self):
        assert is_retryable_api_exception(ValueError("bad mapping")) is False
        assert is_retryable_api_exception(KeyError("fldX")) is False
