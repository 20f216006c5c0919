"""
Exception hierarchy for byrpublish.

All errors raised by the package derive from PublishError so callers
(notably the CLI) can catch a single base type. Remote failures carry the
resource they were talking to; publishing failures carry the step that
failed.

Hierarchy:
    PublishError
    ├── ConfigError
    │   ├── ConfigFileError
    │   └── ConfigValidationError
    ├── ParserError
    ├── RecordShapeError
    ├── RecordValidationError
    ├── RemoteError
    │   ├── AuthenticationError
    │   ├── AccessDeniedError
    │   ├── ResourceNotFoundError
    │   ├── ValidationFailedError
    │   ├── RateLimitError
    │   └── TransientError
    ├── FeedError
    ├── StoreError
    │   └── RecordNotFoundError
    ├── BindingRequiredError
    ├── PublishStepError
    ├── WebhookError
    │   └── SignatureError
    └── UploadError
        ├── FileExistsRemoteError
        └── UploadCancelledError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from byrpublish.core.validation import FieldError


class PublishError(Exception):
    """Base exception for all byrpublish errors."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by {type(self.cause).__name__}: {self.cause})"
        return self.message


# =============================================================================
# Configuration
# =============================================================================


class ConfigError(PublishError):
    """Invalid or missing configuration."""


class ConfigFileError(ConfigError):
    """A configuration file could not be read or parsed."""

    def __init__(self, message: str, path: str | None = None, cause: BaseException | None = None):
        super().__init__(message, cause)
        self.path = path


class ConfigValidationError(ConfigError):
    """Configuration was loaded but failed validation."""

    def __init__(self, errors: list[str]):
        super().__init__("Invalid configuration: " + "; ".join(errors))
        self.errors = errors


# =============================================================================
# Records
# =============================================================================


class ParserError(PublishError):
    """YAML text could not be parsed into a metadata record."""


class RecordShapeError(PublishError):
    """A record payload does not match its declared kind."""


class RecordValidationError(PublishError):
    """A record failed field validation before staging."""

    def __init__(self, errors: list[FieldError]):
        message = "; ".join(f"{e.field_id}: {e.message}" for e in errors) or "invalid record"
        super().__init__(message)
        self.errors = errors

    @property
    def field_ids(self) -> list[str]:
        return [e.field_id for e in self.errors]


# =============================================================================
# Remote services
# =============================================================================


class RemoteError(PublishError):
    """A call to a remote service (GitHub, object storage) failed."""

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.resource = resource


class AuthenticationError(RemoteError):
    """Credentials were missing, invalid or expired (HTTP 401)."""


class AccessDeniedError(RemoteError):
    """Credentials lack permission for the resource (HTTP 403)."""


class ResourceNotFoundError(RemoteError):
    """The remote resource does not exist (HTTP 404)."""


class ValidationFailedError(RemoteError):
    """The remote service rejected the request body (HTTP 422)."""


class RateLimitError(RemoteError):
    """Rate limit exceeded (HTTP 429)."""

    def __init__(
        self,
        message: str,
        retry_after: int | None = None,
        resource: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, resource, cause)
        self.retry_after = retry_after


class TransientError(RemoteError):
    """Server-side or network failure (HTTP 5xx, connection reset)."""


class FeedError(PublishError):
    """The remote metadata feed could not be fetched or decoded."""


# =============================================================================
# Persistence
# =============================================================================


class StoreError(PublishError):
    """Persistence layer failure."""


class RecordNotFoundError(StoreError):
    """A row or record that an operation targets does not exist."""

    def __init__(self, message: str, key: Any = None):
        super().__init__(message)
        self.key = key


# =============================================================================
# Publishing
# =============================================================================


class BindingRequiredError(PublishError):
    """The user has no repository binding; they must bind a fork first."""


class PublishStepError(PublishError):
    """One step of the publish sequence failed."""

    def __init__(self, step: Any, message: str, cause: BaseException | None = None):
        super().__init__(message, cause)
        self.step = step


# =============================================================================
# Webhooks
# =============================================================================


class WebhookError(PublishError):
    """Webhook request could not be processed."""


class SignatureError(WebhookError):
    """Webhook signature missing or does not match the payload."""


# =============================================================================
# Upload
# =============================================================================


class UploadError(PublishError):
    """File upload failed."""


class FileExistsRemoteError(UploadError):
    """The object key already exists in the archive."""

    def __init__(self, key: str):
        super().__init__(f"File already exists: {key}")
        self.key = key


class UploadCancelledError(UploadError):
    """The upload or hashing was cancelled by the caller."""


__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "BindingRequiredError",
    "ConfigError",
    "ConfigFileError",
    "ConfigValidationError",
    "FeedError",
    "FileExistsRemoteError",
    "ParserError",
    "PublishError",
    "PublishStepError",
    "RateLimitError",
    "RecordNotFoundError",
    "RecordShapeError",
    "RecordValidationError",
    "RemoteError",
    "ResourceNotFoundError",
    "SignatureError",
    "StoreError",
    "TransientError",
    "UploadCancelledError",
    "UploadError",
    "ValidationFailedError",
    "WebhookError",
]
