"""Signed bearer assertion for the OAuth 2.0 JWT-bearer grant.

See https://developers.google.com/identity/protocols/oauth2/service-account#authorizingrequests
"""
import calendar
from datetime import datetime

from google.auth import crypt, jwt  # type: ignore

from async_ferno._config import ASSERTION_LIFETIME, SCOPES, TOKEN_URL
from async_ferno.errors import SigningError
from async_ferno.models import ServiceIdentity


def _to_secs(value: datetime) -> int:
    return calendar.timegm(value.utctimetuple())


def build_assertion(identity: ServiceIdentity, now: datetime) -> bytes:
    """
    Build the RS256 signed assertion that is exchanged for an access token.

    The function is pure, the same identity and instant always produce the same assertion.

    :param identity: service account identity.
    :param now: issue instant of the assertion.
    :raises: ``errors.SigningError`` if the private key cannot be loaded or used for signing.
    :return: compact serialized JWT.
    """
    payload = {
        "iss": identity.email,
        "scope": " ".join(SCOPES),
        "aud": TOKEN_URL,
        "iat": _to_secs(now),
        "exp": _to_secs(now + ASSERTION_LIFETIME),
    }
    try:
        signer = crypt.RSASigner.from_string(identity.private_key_pem)
        return jwt.encode(signer, payload, header={"typ": "JWT", "alg": "RS256"})
    except (ValueError, TypeError) as exc:
        raise SigningError(f"Unable to sign the assertion for {identity.email}: {exc}", cause=exc) from exc
