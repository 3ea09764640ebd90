"""
Unit tests for status classification and error utilities.
"""

import httpx
import pytest

from key_rotator.core.errors import (
    classify_status,
    get_retry_after,
    mask_credential,
    should_rotate,
)
from key_rotator.core.types import AttemptOutcome


class TestClassification:
    """Status classification and the rotate decision."""

    @pytest.mark.parametrize("status", [401, 403, 429])
    def test_quota_signals(self, status):
        assert classify_status(status) is AttemptOutcome.QUOTA

    @pytest.mark.parametrize("status", [200, 204, 302, 400, 404, 500, 502])
    def test_pass_through(self, status):
        assert classify_status(status) is AttemptOutcome.PASS_THROUGH

    def test_quota_rotates_only_with_attempts_left(self):
        assert should_rotate(AttemptOutcome.QUOTA, 1) is True
        assert should_rotate(AttemptOutcome.QUOTA, 0) is False

    def test_transport_error_always_rotates(self):
        assert should_rotate(AttemptOutcome.TRANSPORT_ERROR, 0) is True

    def test_pass_through_never_rotates(self):
        assert should_rotate(AttemptOutcome.PASS_THROUGH, 5) is False


class TestMaskCredential:
    """Test cases for mask_credential."""

    def test_partial(self):
        assert mask_credential("AIzaSyABCDEFGHIJ1234") == "AIza...1234"

    def test_full(self):
        assert mask_credential("AIzaSyABCDEFGHIJ1234", style="full") == "...1234"

    def test_short_values_fully_hidden(self):
        assert mask_credential("abc") == "****"

    def test_empty(self):
        assert mask_credential("") == "<empty>"


class TestRetryAfter:
    """Test cases for get_retry_after."""

    def test_seconds(self):
        assert get_retry_after(httpx.Headers({"Retry-After": "45"})) == 45.0

    def test_http_date(self):
        headers = httpx.Headers({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        now = 1445412480.0 - 120  # two minutes before that date
        assert get_retry_after(headers, now=now) == pytest.approx(120.0)

    def test_past_date_clamped_to_zero(self):
        headers = httpx.Headers({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert get_retry_after(headers, now=1445412480.0 + 10) == 0.0

    def test_missing(self):
        assert get_retry_after(httpx.Headers()) is None

    def test_garbage(self):
        assert get_retry_after(httpx.Headers({"Retry-After": "later"})) is None
