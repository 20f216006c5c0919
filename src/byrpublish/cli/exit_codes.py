"""
Exit Codes - process exit status for every byrpublish command.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """
    Exit codes returned by CLI commands.

    0 is success; 1-9 are failures by category; 130 follows the shell
    convention for termination by Ctrl+C.
    """

    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    FILE_NOT_FOUND = 3
    CONNECTION_ERROR = 4
    AUTH_ERROR = 5
    VALIDATION_ERROR = 6
    PUBLISH_ERROR = 7
    NOT_FOUND = 8
    BINDING_REQUIRED = 9
    CANCELLED = 10
    SIGINT = 130

    @property
    def description(self) -> str:
        return {
            ExitCode.SUCCESS: "Success",
            ExitCode.ERROR: "General error",
            ExitCode.CONFIG_ERROR: "Configuration error",
            ExitCode.FILE_NOT_FOUND: "File not found",
            ExitCode.CONNECTION_ERROR: "Could not reach a remote service",
            ExitCode.AUTH_ERROR: "Authentication failed",
            ExitCode.VALIDATION_ERROR: "Validation failed",
            ExitCode.PUBLISH_ERROR: "Publishing failed",
            ExitCode.NOT_FOUND: "Record not found",
            ExitCode.BINDING_REQUIRED: "No repository bound",
            ExitCode.CANCELLED: "Cancelled",
            ExitCode.SIGINT: "Interrupted",
        }[self]

    @classmethod
    def from_exception(cls, exc: BaseException) -> ExitCode:
        """Exit code that best describes ``exc``."""
        from byrpublish.core.exceptions import (
            AccessDeniedError,
            AuthenticationError,
            BindingRequiredError,
            ConfigError,
            FeedError,
            ParserError,
            PublishStepError,
            RecordNotFoundError,
            RecordShapeError,
            RecordValidationError,
            RemoteError,
            UploadCancelledError,
        )

        if isinstance(exc, KeyboardInterrupt):
            return cls.SIGINT
        if isinstance(exc, FileNotFoundError):
            return cls.FILE_NOT_FOUND

        # Most specific first
        table: list[tuple[type[BaseException], ExitCode]] = [
            (ConfigError, cls.CONFIG_ERROR),
            (UploadCancelledError, cls.CANCELLED),
            (BindingRequiredError, cls.BINDING_REQUIRED),
            (AuthenticationError, cls.AUTH_ERROR),
            (AccessDeniedError, cls.AUTH_ERROR),
            (RecordValidationError, cls.VALIDATION_ERROR),
            (RecordShapeError, cls.VALIDATION_ERROR),
            (ParserError, cls.VALIDATION_ERROR),
            (RecordNotFoundError, cls.NOT_FOUND),
            (PublishStepError, cls.PUBLISH_ERROR),
            (FeedError, cls.CONNECTION_ERROR),
            (RemoteError, cls.CONNECTION_ERROR),
        ]
        for exc_type, code in table:
            if isinstance(exc, exc_type):
                return code
        return cls.ERROR
