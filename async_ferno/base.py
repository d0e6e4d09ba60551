"""
The module houses the base client that authenticates and dispatches requests to a Firebase Realtime Database.

Requests are authorized with an OAuth 2.0 access token obtained for a Google service account, see
https://firebase.google.com/docs/database/rest/auth#google_oauth2_access_tokens
"""
import logging
import typing as t
from datetime import datetime
from pathlib import PurePath

import httpx

from async_ferno._config import DEFAULT_REQUEST_LIMITS, DEFAULT_REQUEST_TIMEOUT, MAX_RESPONSE_SIZE
from async_ferno._config import RequestLimits, RequestTimeout
from async_ferno._credentials import TokenManager
from async_ferno.encoders import encode_json_body
from async_ferno.errors import DecodeError
from async_ferno.models import FernoQuery, ServiceIdentity
from async_ferno.utils import FernoResponseHandlerBase, join_url


F = t.TypeVar("F")


class AsyncClientBase:
    """Base asynchronous client"""

    def __init__(
        self,
        base_path: str,
        identity: ServiceIdentity,
        request_timeout: RequestTimeout = DEFAULT_REQUEST_TIMEOUT,
        request_limits: RequestLimits = DEFAULT_REQUEST_LIMITS,
        http_client: t.Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        :param base_path: URL of the database, e.g. ``https://<project-id>.firebaseio.com``.
        :param identity: instance of ``models.ServiceIdentity``. To create it from a Google service account private
            key JSON file use one of the helper constructors::

                AsyncFernoClient.from_service_account_file(base_path, 'service-account.json')

            Or if you already have the service account file loaded::

                service_account_info = json.load(open('service_account.json'))
                AsyncFernoClient.from_service_account_info(base_path, service_account_info)

        :param request_timeout: advanced feature that allows to change request timeout.
        :param request_limits: advanced feature that allows to control the connection pool size.
        :param http_client: externally managed ``httpx.AsyncClient``, it is not closed by ``aclose``.
        """
        self.base_path: str = base_path
        self._token_manager: TokenManager = TokenManager(identity)
        self._request_timeout = request_timeout
        self._request_limits = request_limits
        self._http_client: t.Optional[httpx.AsyncClient] = http_client
        self._owns_http_client: bool = http_client is None

    @classmethod
    def from_service_account_info(cls, base_path: str, service_account_info: t.Dict[str, str], **kwargs):
        """
        Creates a client from parsed service account info.

        :param base_path: URL of the database.
        :param service_account_info: the service account info in Google format.
        """
        return cls(base_path, ServiceIdentity.from_service_account_info(service_account_info), **kwargs)

    @classmethod
    def from_service_account_file(cls, base_path: str, service_account_filename: t.Union[str, PurePath], **kwargs):
        """
        Creates a client from a service account json file.

        :param base_path: URL of the database.
        :param service_account_filename: the path to the service account json file.
        """
        logging.debug("Creating credentials from file: %s", service_account_filename)
        return cls(base_path, ServiceIdentity.from_service_account_file(service_account_filename), **kwargs)

    @property
    def token_manager(self) -> TokenManager:
        return self._token_manager

    @property
    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._request_timeout.timeout,
                limits=httpx.Limits(
                    max_connections=self._request_limits.max_connections,
                    max_keepalive_connections=self._request_limits.max_keepalive_connections,
                    keepalive_expiry=self._request_limits.keepalive_expiry,
                ),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def compose_request(
        self,
        method: str,
        path: t.Sequence[str],
        query: t.Iterable[FernoQuery],
        body: t.Any,
        headers: t.Optional[t.Mapping[str, str]],
        access_token: str,
    ) -> httpx.Request:
        """
        Build an authenticated request to a database location. No network access happens here.

        :param method: HTTP method.
        :param path: ordered path segments, e.g. ``["users", "42"]``.
        :param query: query parameters, the access token is appended to them as ``auth``.
        :param body: JSON serializable body or ``None``.
        :param headers: request headers, attached as given.
        :param access_token: the OAuth 2.0 access token.
        :raises:

            ``errors.UrlConstructionError`` if the URL cannot be constructed
            ``errors.EncodingError`` if the body cannot be serialized

        :return: instance of ``httpx.Request``
        """
        url = join_url(self.base_path, path, query, access_token)
        content = encode_json_body(body)
        request_headers = httpx.Headers(headers or {})
        if content is not None and "content-type" not in request_headers:
            request_headers["Content-Type"] = "application/json"
        return httpx.Request(method.upper(), url, headers=request_headers, content=content)

    async def prepare_request(
        self,
        method: str,
        path: t.Sequence[str],
        query: t.Iterable[FernoQuery] = (),
        body: t.Any = None,
        headers: t.Optional[t.Mapping[str, str]] = None,
        now: t.Optional[datetime] = None,
    ) -> httpx.Request:
        """Make sure a valid access token is available and compose the request with it."""
        access_token = await self._token_manager.get_access_token(self._client, now=now)
        return self.compose_request(method, path, query, body, headers, access_token.value)

    async def dispatch(self, request: httpx.Request) -> httpx.Response:
        """Send the request, the response body is left unread."""
        logging.debug("Requesting %s %s", request.method, request.url.copy_remove_param("auth"))
        response: httpx.Response = await self._client.send(request, stream=True)
        logging.debug("Response Code: %s", response.status_code)
        return response

    @staticmethod
    async def read_bounded(response: httpx.Response, max_size: int = MAX_RESPONSE_SIZE) -> bytes:
        """
        Read at most ``max_size`` bytes of the response body.

        :raises: ``errors.DecodeError`` if the body is larger than ``max_size``.
        """
        content_length = response.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_size:
            raise DecodeError(
                f"Response body of {content_length} bytes exceeds the limit of {max_size} bytes",
                http_response=response,
            )

        chunks = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > max_size:
                raise DecodeError(f"Response body exceeds the limit of {max_size} bytes", http_response=response)
            chunks.append(chunk)
        return b"".join(chunks)

    async def send_request(
        self,
        method: str,
        path: t.Sequence[str],
        response_handler: FernoResponseHandlerBase[F],
        query: t.Iterable[FernoQuery] = (),
        body: t.Any = None,
        headers: t.Optional[t.Mapping[str, str]] = None,
    ) -> F:
        """
        Sends an HTTP call using the ``httpx`` library and decodes the response.

        :param method: HTTP method.
        :param path: ordered path segments.
        :param response_handler: the handler that decodes the response.
        :param query: query parameters.
        :param body: request body.
        :param headers: request headers.
        :raises:

            ``errors.RequestFailedError`` if the database responded with a non-success status
            ``errors.DecodeError`` if the response body cannot be decoded

        :return: decoded response
        """
        request = await self.prepare_request(method, path, query=query, body=body, headers=headers)
        response = await self.dispatch(request)
        try:
            if not response.is_success:
                try:
                    content = await self.read_bounded(response)
                except DecodeError:
                    content = b""
                raise response_handler.handle_error(response, content)
            content = await self.read_bounded(response)
        finally:
            await response.aclose()

        return response_handler.handle_response(response, content)
