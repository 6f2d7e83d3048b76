"""
Error kinds raised while assembling trust and identity material.
"""
from typing import Optional


class SSLCheckerError(Exception):
    """Base class for all errors raised by the security package."""


class NotFoundError(SSLCheckerError, FileNotFoundError):
    """A referenced file or path does not exist."""


class InvalidArgumentError(SSLCheckerError, ValueError):
    """A required value is blank or an invalid combination was supplied."""


class MalformedInputError(SSLCheckerError, ValueError):
    """Content does not conform to the expected format."""


class AuthenticationError(SSLCheckerError):
    """A structurally valid store could not be opened with the given password."""


class InitializationError(SSLCheckerError):
    """The TLS context or one of its managers could not be initialized."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self):
        if self.cause is not None:
            return f"{self.args[0]}: {self.cause}"
        return self.args[0]


class UnexpectedResponseError(SSLCheckerError):
    """An HTTP request completed with a status code other than 200."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
