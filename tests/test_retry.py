"""Tests for the opt-in retry helper."""

import unittest
from unittest.mock import MagicMock, patch

from fakes import FakeClock, FakeTransport, make_dispatcher, make_response

from neos._errors import DeserializationError, OtherRequestError, ResponseCodeError
from neos._retry import MaxRetriesExceededError, RetryAttempt, Retrying


class TestRetryAttempt(unittest.TestCase):
    """Tests for RetryAttempt."""

    def test_is_last_attempt(self):
        self.assertFalse(RetryAttempt(attempt_number=0, max_retries=2).is_last_attempt)
        self.assertTrue(RetryAttempt(attempt_number=2, max_retries=2).is_last_attempt)


class TestRetryingBasicUsage(unittest.TestCase):
    """Tests for basic Retrying usage."""

    def test_success_on_first_attempt(self):
        """Should succeed on first attempt without retry."""
        call_count = 0

        for attempt in Retrying(max_retries=3):
            with attempt:
                call_count += 1
                break

        self.assertEqual(call_count, 1)

    @patch("neos._retry.sleep_with_jitter")
    def test_retries_retryable_request_errors(self, mock_sleep: MagicMock):
        """Should retry server errors until success."""
        call_count = 0

        for attempt in Retrying(max_retries=3):
            with attempt:
                call_count += 1
                if call_count < 3:
                    raise ResponseCodeError(503, "unavailable")
                break

        self.assertEqual(call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    @patch("neos._retry.sleep_with_jitter")
    def test_exponential_backoff(self, mock_sleep: MagicMock):
        with self.assertRaises(MaxRetriesExceededError):
            for attempt in Retrying(max_retries=3, backoff_factor=0.5):
                with attempt:
                    raise OtherRequestError("connection reset")

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        self.assertEqual(delays, [0.5, 1.0, 2.0])

    @patch("neos._retry.sleep_with_jitter")
    def test_raises_max_retries_exceeded_when_exhausted(self, mock_sleep: MagicMock):
        call_count = 0

        with self.assertRaises(MaxRetriesExceededError) as ctx:
            for attempt in Retrying(max_retries=2):
                with attempt:
                    call_count += 1
                    raise ResponseCodeError(429)

        self.assertEqual(call_count, 3)
        self.assertIsInstance(ctx.exception.last_exception, ResponseCodeError)
        self.assertEqual(ctx.exception.last_exception.status, 429)

    def test_no_retry_when_max_retries_is_zero(self):
        """Should let the original error through when retries are disabled."""
        with self.assertRaises(ResponseCodeError):
            for attempt in Retrying(max_retries=0):
                with attempt:
                    raise ResponseCodeError(500)

    def test_does_not_retry_client_errors(self):
        call_count = 0

        with self.assertRaises(ResponseCodeError):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    call_count += 1
                    raise ResponseCodeError(404, "not found")

        self.assertEqual(call_count, 1)

    def test_does_not_retry_deserialization_errors(self):
        with self.assertRaises(DeserializationError):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    raise DeserializationError("unexpected payload")

    def test_does_not_retry_other_exceptions(self):
        with self.assertRaises(KeyError):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    raise KeyError("boom")

    @patch("neos._retry.sleep_with_jitter")
    def test_custom_status_codes(self, mock_sleep: MagicMock):
        call_count = 0

        for attempt in Retrying(max_retries=2, retry_on_status_codes=(409,)):
            with attempt:
                call_count += 1
                if call_count == 1:
                    raise ResponseCodeError(409, "conflict")
                break

        self.assertEqual(call_count, 2)

    def test_custom_status_codes_exclude_defaults(self):
        with self.assertRaises(ResponseCodeError):
            for attempt in Retrying(max_retries=2, retry_on_status_codes=(409,)):
                with attempt:
                    raise ResponseCodeError(503)

    def test_invalid_arguments(self):
        with self.assertRaises(AssertionError):
            Retrying(max_retries=-1)
        with self.assertRaises(AssertionError):
            Retrying(backoff_factor=0)


class TestRetryingWithDispatcher(unittest.TestCase):
    """Retrying around real dispatches."""

    @patch("neos._retry.sleep_with_jitter")
    def test_rate_limited_call_succeeds_after_waiting_out_deadline(self, mock_sleep: MagicMock):
        transport = FakeTransport(
            make_response(429, headers={"Retry-After": "5"}),
            make_response(200, json_body="12"),
        )
        clock = FakeClock()
        dispatcher = make_dispatcher(transport, clock)

        for attempt in Retrying(max_retries=2):
            with attempt:
                response = dispatcher.dispatch("GET", "stats/onlineUsers")
                break

        self.assertEqual(response.json(), "12")
        self.assertEqual(len(transport.requests), 2)
        # The dispatcher slept out the 429 deadline itself
        self.assertIn(5, clock.sleeps)
