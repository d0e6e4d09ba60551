"""The module houses the structures exchanged with the OAuth endpoint and the Realtime Database.

"""
import json
import typing as t
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import PurePath


@dataclass(frozen=True)
class ServiceIdentity:
    """
    Service account identity used to sign the OAuth bearer assertion.

    Attributes:
    email: the service account e-mail, used as the issuer of the assertion.
    private_key_pem: the PEM encoded RSA private key of the service account.
    """

    email: str
    private_key_pem: str

    def __repr__(self) -> str:
        return f"ServiceIdentity(email={self.email!r})"

    @classmethod
    def from_service_account_info(cls, service_account_info: t.Dict[str, str]) -> "ServiceIdentity":
        """
        Creates an identity from parsed service account info.

        :param service_account_info: the service account info in Google format.
        :raises: ValueError if ``client_email`` or ``private_key`` are missing.
        """
        missing = {"client_email", "private_key"}.difference(service_account_info)
        if missing:
            raise ValueError(f"Service account info is missing fields: {', '.join(sorted(missing))}")
        return cls(email=service_account_info["client_email"], private_key_pem=service_account_info["private_key"])

    @classmethod
    def from_service_account_file(cls, service_account_filename: t.Union[str, PurePath]) -> "ServiceIdentity":
        """
        Creates an identity from a service account json file.

        :param service_account_filename: the path to the service account json file.
        """
        with open(str(service_account_filename), encoding="utf-8") as json_file:
            return cls.from_service_account_info(json.load(json_file))


@dataclass(frozen=True)
class AccessToken:
    """
    Short-lived OAuth 2.0 access token.

    The pair is immutable: a refresh produces a new instance, so ``value`` and ``expires_at``
    are always observed together.

    Attributes:
    value: the access token itself.
    expires_at: timezone-aware instant after which the token is rejected.
    """

    value: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"AccessToken(expires_at={self.expires_at.isoformat()})"

    def is_valid(self, now: datetime, margin: timedelta = timedelta(0)) -> bool:
        return self.expires_at > now + margin


@dataclass
class OAuthResponse:
    """Body of a successful JWT-bearer grant."""

    access_token: str
    token_type: str
    expires_in: int


@dataclass(frozen=True)
class FernoQuery:
    """
    A single query parameter understood by the Realtime Database REST API.

    See https://firebase.google.com/docs/database/rest/retrieve-data#section-rest-filtering
    for the meaning of each parameter.
    """

    key: str
    value: str

    @staticmethod
    def _quote(value: t.Union[str, int, float, bool, None]) -> str:
        return json.dumps(value)

    @classmethod
    def order_by(cls, child: str) -> "FernoQuery":
        """Order by a child key, or by one of ``$key``, ``$value``, ``$priority``."""
        return cls("orderBy", cls._quote(child))

    @classmethod
    def limit_to_first(cls, limit: int) -> "FernoQuery":
        return cls("limitToFirst", str(int(limit)))

    @classmethod
    def limit_to_last(cls, limit: int) -> "FernoQuery":
        return cls("limitToLast", str(int(limit)))

    @classmethod
    def start_at(cls, value: t.Union[str, int, float, bool, None]) -> "FernoQuery":
        return cls("startAt", cls._quote(value))

    @classmethod
    def end_at(cls, value: t.Union[str, int, float, bool, None]) -> "FernoQuery":
        return cls("endAt", cls._quote(value))

    @classmethod
    def equal_to(cls, value: t.Union[str, int, float, bool, None]) -> "FernoQuery":
        return cls("equalTo", cls._quote(value))

    @classmethod
    def shallow(cls, enabled: bool = True) -> "FernoQuery":
        """Only return the keys of the children, with values truncated to ``true``."""
        return cls("shallow", cls._quote(enabled))


@dataclass
class FernoChild:
    """
    Response to a POST request, ``name`` holds the key generated for the new child.
    """

    name: str


FernoPath = t.Sequence[str]
