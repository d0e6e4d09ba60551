import json
import typing as t
from abc import ABC, abstractmethod
from urllib.parse import quote, urlencode

import httpx

from async_ferno import errors
from async_ferno.encoders import decode_json, decode_value
from async_ferno.errors import DecodeError, RequestFailedError, UrlConstructionError
from async_ferno.models import FernoPath, FernoQuery


F = t.TypeVar("F")

PATH_SUFFIX = ".json"
AUTH_PARAM = "auth"

_UNSET = object()


def make_child_path(path: FernoPath) -> str:
    """Build the location part of a database URL.

    Segments may hold nested locations, ``"users/42"`` addresses the same location as ``["users", "42"]``.
    Every part is percent-encoded on its own, empty parts are dropped.

    Example::

        >>> make_child_path(["users", "42"])
        '/users/42.json'
        >>> make_child_path(["users/42"])
        '/users/42.json'
        >>> make_child_path([])
        '/.json'

    :param path: ordered path segments.
    :raises: ``errors.UrlConstructionError`` if the path is a plain string, a part is ``.`` or ``..``, or the given
        segments hold no parts at all.
    """
    if isinstance(path, str):
        raise UrlConstructionError(f"Path must be a sequence of segments, not a string: {path!r}")
    parts = [part for segment in path for part in str(segment).split("/") if part]
    if path and not parts:
        raise UrlConstructionError(f"Path {list(path)!r} holds no location")
    for part in parts:
        # httpx would resolve them as dot segments and escape the base path
        if part in (".", ".."):
            raise UrlConstructionError(f"Invalid path segment {part!r} in {list(path)!r}")
    return "/" + "/".join(quote(part, safe="") for part in parts) + PATH_SUFFIX


def make_query_string(query: t.Iterable[FernoQuery], access_token: str) -> str:
    """Serialize query parameters, the access token is always appended last as ``auth``."""
    params = [(q.key, q.value) for q in query]
    params.append((AUTH_PARAM, access_token))
    return urlencode(params, quote_via=quote)


def join_url(base: str, path: FernoPath, query: t.Iterable[FernoQuery], access_token: str) -> str:
    """Construct the full URL of a database location.

    :param base: base path of the database, e.g. ``https://<project>.firebaseio.com``.
    :param path: ordered path segments.
    :param query: query parameters.
    :param access_token: value of the ``auth`` query parameter.
    :raises: ``errors.UrlConstructionError`` if the result is not an absolute http(s) URL.
    :return: full URL
    """
    url = f"{base.rstrip('/')}{make_child_path(path)}?{make_query_string(query, access_token)}"
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise UrlConstructionError(f"Unable to construct URL from base {base!r}: {exc}", cause=exc)
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise UrlConstructionError(f"Base path must be an absolute http(s) URL, got {base!r}")
    return url


class FernoResponseHandlerBase(ABC, t.Generic[F]):
    """Turn a raw database response into a decoded value or a ``errors.RequestFailedError``."""

    HTTP_STATUS_TO_EXCEPTION_TYPE: t.Dict[int, t.Type[RequestFailedError]] = {
        400: errors.InvalidArgumentError,
        401: errors.UnauthenticatedError,
        403: errors.PermissionDeniedError,
        404: errors.NotFoundError,
        412: errors.FailedPreconditionError,
        429: errors.ResourceExhaustedError,
        500: errors.InternalError,
        503: errors.UnavailableError,
    }

    def __init__(self, model: t.Any) -> None:
        """
        :param model: the shape each decoded value has to match.
        """
        self.model = model

    @abstractmethod
    def handle_response(self, response: httpx.Response, content: bytes) -> F:
        pass

    def handle_error(self, response: httpx.Response, content: bytes) -> RequestFailedError:
        err_type = self.HTTP_STATUS_TO_EXCEPTION_TYPE.get(response.status_code, RequestFailedError)
        return err_type(
            response.status_code,
            self._parse_platform_error(response.status_code, content),
            http_response=response,
        )

    def _decode(self, response: httpx.Response, content: bytes, tp: t.Any, data: t.Any = _UNSET) -> t.Any:
        try:
            if data is _UNSET:
                return decode_json(content, tp)
            return decode_value(data, tp)
        except DecodeError as exc:
            exc.http_response = response
            raise

    @staticmethod
    def _parse_platform_error(status_code: int, content: bytes) -> str:
        """Extract the message from a Realtime Database error body, ``{"error": "Permission denied"}``."""
        data: t.Any = None
        try:
            data = json.loads(content)
        except ValueError:
            pass

        if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
            return data["error"]
        return f"Unexpected HTTP response with status: {status_code}; body: {content!r}"


class FernoResponseHandler(FernoResponseHandlerBase[F]):
    def handle_response(self, response: httpx.Response, content: bytes) -> F:
        return self._decode(response, content, self.model)


class FernoManyResponseHandler(FernoResponseHandlerBase[t.Dict[str, F]]):
    def handle_response(self, response: httpx.Response, content: bytes) -> t.Dict[str, F]:
        data = self._decode(response, content, t.Any)
        # an empty location is returned as ``null``
        if data is None:
            return {}
        return self._decode(response, content, t.Dict[str, self.model], data=data)  # type: ignore
