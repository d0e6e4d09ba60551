"""
The module houses client to communicate with Firebase Realtime Database over its REST API.

Documentation for the REST API https://firebase.google.com/docs/reference/rest/database
"""
import logging
import typing as t

from async_ferno.base import AsyncClientBase, RequestLimits, RequestTimeout  # noqa: F401
from async_ferno.models import FernoChild, FernoQuery
from async_ferno.utils import FernoManyResponseHandler, FernoResponseHandler


F = t.TypeVar("F")


class AsyncFernoClient(AsyncClientBase):
    """Async client for Firebase Realtime Database.

    The AsyncFernoClient relies on Service Account to enable us making a request. To get more about Service Account
    please refer to https://firebase.google.com/support/guides/service-accounts
    """

    async def delete(self, path: t.Sequence[str], method: str = "DELETE") -> bool:
        """
        Delete the data at the given location.

        A non-success status is reported as ``False`` rather than an exception.

        :param path: ordered path segments of the location.
        :param method: HTTP method, ``DELETE`` unless the caller needs an override.
        :return: ``True`` if the database responded with a success status.
        """
        request = await self.prepare_request(method, path)
        response = await self.dispatch(request)
        await response.aclose()
        if not response.is_success:
            logging.debug("Deleting %s failed with status %s", "/".join(path), response.status_code)
        return response.is_success

    async def send(
        self,
        method: str,
        path: t.Sequence[str],
        model: t.Type[F],
        query: t.Iterable[FernoQuery] = (),
        body: t.Any = None,
        headers: t.Optional[t.Mapping[str, str]] = None,
    ) -> F:
        """
        Send a request and decode the response body as a single value.

        :param method: HTTP method.
        :param path: ordered path segments of the location.
        :param model: the shape of the response, a dataclass, a typing construct or a JSON primitive type.
        :param query: query parameters, see ``models.FernoQuery``.
        :param body: request body, JSON serializable value or a dataclass instance.
        :param headers: request headers.

        :raises:

            ``errors.RequestFailedError`` if the database responded with a non-success status
            ``errors.DecodeError`` if the body is larger than 64KiB or does not match ``model``

        :return: decoded response
        """
        return await self.send_request(
            method, path, FernoResponseHandler(model), query=query, body=body, headers=headers
        )

    async def send_many(
        self,
        method: str,
        path: t.Sequence[str],
        model: t.Type[F],
        query: t.Iterable[FernoQuery] = (),
        body: t.Any = None,
        headers: t.Optional[t.Mapping[str, str]] = None,
    ) -> t.Dict[str, F]:
        """
        Send a request and decode the response body as children keyed by their database key.

        Example of raw response::

            {
                "-NbQ3xkA1": {"name": "Ann"},
                "-NbQ3xkA2": {"name": "Bob"}
            }

        Please see params information in ``send``.

        :return: mapping of child key to decoded value, empty if the location holds no data.
        """
        return await self.send_request(
            method, path, FernoManyResponseHandler(model), query=query, body=body, headers=headers
        )

    async def retrieve(self, path: t.Sequence[str], model: t.Type[F], query: t.Iterable[FernoQuery] = ()) -> F:
        """Read the value at the given location."""
        return await self.send("GET", path, model, query=query)

    async def retrieve_many(
        self, path: t.Sequence[str], model: t.Type[F], query: t.Iterable[FernoQuery] = ()
    ) -> t.Dict[str, F]:
        """Read the children of the given location."""
        return await self.send_many("GET", path, model, query=query)

    async def create(self, path: t.Sequence[str], body: t.Any) -> FernoChild:
        """
        Push a new child with a generated key under the given location.

        :return: instance of ``models.FernoChild``, its ``name`` is the generated key.
        """
        return await self.send("POST", path, FernoChild, body=body)

    async def update(self, path: t.Sequence[str], body: t.Any, model: t.Type[F]) -> F:
        """Update some of the keys at the given location without overwriting the others."""
        return await self.send("PATCH", path, model, body=body)

    async def overwrite(self, path: t.Sequence[str], body: t.Any, model: t.Type[F]) -> F:
        """Replace the data at the given location."""
        return await self.send("PUT", path, model, body=body)
