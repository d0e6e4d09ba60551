"""Async Ferno errors."""
import typing as t
from enum import Enum

import httpx


class FernoErrorCode(Enum):
    SIGNING_FAILED = "SIGNING_FAILED"
    TOKEN_EXCHANGE_FAILED = "TOKEN_EXCHANGE_FAILED"
    TOKEN_DECODE_FAILED = "TOKEN_DECODE_FAILED"
    INVALID_TOKEN_STATE = "INVALID_TOKEN_STATE"
    ENCODING_FAILED = "ENCODING_FAILED"
    INVALID_URL = "INVALID_URL"
    DECODE_FAILED = "DECODE_FAILED"
    REQUEST_FAILED = "REQUEST_FAILED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    INTERNAL = "INTERNAL"
    UNAVAILABLE = "UNAVAILABLE"


class BaseAsyncFernoError(Exception):
    """Base error for Async Ferno"""


class AsyncFernoError(BaseAsyncFernoError):
    """A prototype for all Async Ferno errors."""

    def __init__(
        self,
        code: str,
        message: str,
        cause: t.Optional[Exception] = None,
        http_response: t.Optional[httpx.Response] = None,
    ):
        """Init the AsyncFerno error.

        :param code: A string error code that represents the type of the exception, one of ``FernoErrorCode`` values.
        :param message: A human-readable error message string.
        :param cause: The exception that caused this error (optional).
        :param http_response: If this error was caused by an HTTP error response, this property is
            set to the ``httpx.Response`` object that represents the HTTP response (optional).
            See https://www.python-httpx.org/api/#response for details of this object.
        """
        self.code = code
        self.cause = cause
        self.http_response = http_response
        super().__init__(message)


class SigningError(AsyncFernoError):
    """The service account private key is malformed or was rejected by the RS256 signer."""

    def __init__(self, message, cause=None):
        super().__init__(FernoErrorCode.SIGNING_FAILED.value, message, cause=cause)


class TokenExchangeError(AsyncFernoError):
    """The OAuth token endpoint is unreachable or returned a non-success status."""

    def __init__(self, message, cause=None, http_response=None):
        """Please see params information in the base exception docstring."""
        super().__init__(
            FernoErrorCode.TOKEN_EXCHANGE_FAILED.value, message, cause=cause, http_response=http_response
        )


class TokenDecodeError(AsyncFernoError):
    """The OAuth token endpoint answered with a body that is not ``{access_token, token_type, expires_in}``."""

    def __init__(self, message, cause=None, http_response=None):
        """Please see params information in the base exception docstring."""
        super().__init__(FernoErrorCode.TOKEN_DECODE_FAILED.value, message, cause=cause, http_response=http_response)


class InvalidTokenStateError(AsyncFernoError):
    """The token cache claims validity but holds no token value. This is a bug, not a runtime condition."""

    def __init__(self, message):
        super().__init__(FernoErrorCode.INVALID_TOKEN_STATE.value, message)


class EncodingError(AsyncFernoError):
    """Request body cannot be serialized."""

    def __init__(self, message, cause=None):
        super().__init__(FernoErrorCode.ENCODING_FAILED.value, message, cause=cause)


class UrlConstructionError(AsyncFernoError):
    """Base path, path segments and query do not form a valid URL."""

    def __init__(self, message, cause=None):
        super().__init__(FernoErrorCode.INVALID_URL.value, message, cause=cause)


class DecodeError(AsyncFernoError):
    """Response body does not match the declared shape or exceeds the size bound."""

    def __init__(self, message, cause=None, http_response=None):
        """Please see params information in the base exception docstring."""
        super().__init__(FernoErrorCode.DECODE_FAILED.value, message, cause=cause, http_response=http_response)


class RequestFailedError(AsyncFernoError):
    """The database responded with a non-success status.

    Subclasses narrow the status down the way Google's APIs name them, so callers may either catch
    ``RequestFailedError`` and inspect ``status`` or catch e.g. ``PermissionDeniedError`` directly.
    """

    def __init__(self, status, message, cause=None, http_response=None, code=None):
        """
        :param status: HTTP status code returned by the database.

        Please see other params information in the base exception docstring.
        """
        self.status = status
        super().__init__(
            code or FernoErrorCode.REQUEST_FAILED.value, message, cause=cause, http_response=http_response
        )


class InvalidArgumentError(RequestFailedError):
    """Client specified an invalid argument, e.g. malformed query or body."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.INVALID_ARGUMENT.value
        )


class UnauthenticatedError(RequestFailedError):
    """Request not authenticated due to missing, invalid, or expired OAuth token."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.UNAUTHENTICATED.value
        )


class PermissionDeniedError(RequestFailedError):
    """Client does not have sufficient permission.

    This can happen because the OAuth token does not have the right scopes or the database rules
    reject the operation.
    """

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.PERMISSION_DENIED.value
        )


class NotFoundError(RequestFailedError):
    """The database or the requested location does not exist."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.NOT_FOUND.value
        )


class FailedPreconditionError(RequestFailedError):
    """Conditional request ETag did not match."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.FAILED_PRECONDITION.value
        )


class ResourceExhaustedError(RequestFailedError):
    """Either out of resource quota or reaching rate limiting."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.RESOURCE_EXHAUSTED.value
        )


class InternalError(RequestFailedError):
    """Internal server error."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.INTERNAL.value
        )


class UnavailableError(RequestFailedError):
    """Service unavailable. Typically the server is down."""

    def __init__(self, status, message, cause=None, http_response=None):
        super().__init__(
            status, message, cause=cause, http_response=http_response, code=FernoErrorCode.UNAVAILABLE.value
        )
