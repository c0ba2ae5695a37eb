"""Tests for the exception hierarchy and error classification."""

import errno

import pytest

from gallery_core.errors import (
    AuthError,
    ConfigurationError,
    ErrorCategory,
    GalleryError,
    GroupNotFoundError,
    PermanentError,
    ThrottlingError,
    TransientError,
    TransportError,
    classify_http_status,
    classify_os_error,
)


class TestHierarchy:
    """Categories and retryability of each exception class."""

    def test_auth_error_is_not_retryable(self):
        err = AuthError("bad token")
        assert err.category == ErrorCategory.AUTH
        assert err.is_retryable is False

    def test_throttling_error_carries_retry_after(self):
        err = ThrottlingError("slow down", retry_after=7.5)
        assert isinstance(err, TransientError)
        assert err.retry_after == 7.5
        assert err.is_retryable is True

    def test_group_not_found_is_a_transport_error(self):
        err = GroupNotFoundError("gone", status_code=404)
        assert isinstance(err, TransportError)
        assert isinstance(err, PermanentError)
        assert err.status_code == 404
        assert err.is_retryable is False

    def test_configuration_error_is_permanent(self):
        assert ConfigurationError("x").category == ErrorCategory.PERMANENT

    def test_str_includes_cause(self):
        cause = ValueError("boom")
        err = GalleryError("wrapped", cause=cause)
        assert str(err) == "wrapped | Caused by: boom"

    def test_context_defaults_to_empty_dict(self):
        assert GalleryError("x").context == {}


class TestClassifyHttpStatus:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (200, ErrorCategory.UNKNOWN),
            (304, ErrorCategory.UNKNOWN),
            (401, ErrorCategory.AUTH),
            (404, ErrorCategory.PERMANENT),
            (429, ErrorCategory.TRANSIENT),
            (503, ErrorCategory.TRANSIENT),
            (302, ErrorCategory.PERMANENT),
        ],
    )
    def test_status_categories(self, status, expected):
        assert classify_http_status(status) == expected


class TestClassifyOsError:
    def test_disk_full_is_permanent(self):
        assert classify_os_error(OSError(errno.ENOSPC, "full")) == ErrorCategory.PERMANENT

    def test_permission_denied_is_permanent(self):
        assert classify_os_error(OSError(errno.EACCES, "denied")) == ErrorCategory.PERMANENT

    def test_other_errors_are_transient(self):
        assert classify_os_error(OSError(errno.EIO, "io")) == ErrorCategory.TRANSIENT
