"""
Tests for the exception hierarchy.
"""

import pytest

from byrpublish.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    BindingRequiredError,
    ConfigFileError,
    ConfigValidationError,
    FeedError,
    FileExistsRemoteError,
    ParserError,
    PublishError,
    PublishStepError,
    RateLimitError,
    RecordNotFoundError,
    RecordValidationError,
    RemoteError,
    SignatureError,
    StoreError,
    UploadCancelledError,
    UploadError,
    WebhookError,
)
from byrpublish.core.validation import FieldError


class TestPublishError:
    """Tests for the base exception."""

    def test_message(self):
        """str() is the message when there is no cause."""
        error = PublishError("boom")
        assert str(error) == "boom"
        assert error.message == "boom"
        assert error.cause is None

    def test_cause_is_appended(self):
        """The cause is named in str()."""
        error = PublishError("boom", cause=ValueError("bad value"))
        assert str(error) == "boom (caused by ValueError: bad value)"

    @pytest.mark.parametrize(
        "exc_type",
        [
            ConfigFileError,
            ParserError,
            AuthenticationError,
            FeedError,
            RecordNotFoundError,
            BindingRequiredError,
            SignatureError,
            UploadCancelledError,
        ],
    )
    def test_everything_is_a_publish_error(self, exc_type):
        """A single except clause catches every package error."""
        assert issubclass(exc_type, PublishError)


class TestSubclasses:
    """Tests for exceptions that carry extra data."""

    def test_config_validation_error_lists_errors(self):
        """All validation errors are joined into the message."""
        error = ConfigValidationError(["a missing", "b invalid"])
        assert error.errors == ["a missing", "b invalid"]
        assert "a missing; b invalid" in str(error)

    def test_record_validation_error(self):
        """Field ids are exposed for highlighting."""
        error = RecordValidationError([FieldError("book-title", "书名不能为空")])
        assert error.field_ids == ["book-title"]
        assert "book-title: 书名不能为空" in str(error)

    def test_remote_error_resource(self):
        """Remote errors remember what they were talking to."""
        error = AccessDeniedError("denied", "/repos/a/b")
        assert isinstance(error, RemoteError)
        assert error.resource == "/repos/a/b"

    def test_rate_limit_retry_after(self):
        """Rate limits carry the server's retry hint."""
        error = RateLimitError("slow down", retry_after=30, resource="/user")
        assert error.retry_after == 30
        assert error.resource == "/user"

    def test_record_not_found_key(self):
        """Missing-row errors carry the key."""
        error = RecordNotFoundError("gone", key=42)
        assert isinstance(error, StoreError)
        assert error.key == 42

    def test_publish_step_error(self):
        """Step errors carry the failing step."""
        error = PublishStepError("commit_files", "提交文件失败")
        assert error.step == "commit_files"
        assert error.message == "提交文件失败"

    def test_file_exists(self):
        """FileExistsRemoteError names the key."""
        error = FileExistsRemoteError("abc.pdf")
        assert isinstance(error, UploadError)
        assert error.key == "abc.pdf"
        assert "abc.pdf" in str(error)

    def test_signature_error_is_webhook_error(self):
        """Signature failures are webhook errors."""
        assert issubclass(SignatureError, WebhookError)
