import logging
from dataclasses import dataclass, field, fields

import requests
import zope.interface

from .errors import TokenExchangeFailed
from .interfaces import IOAuthClient


logger = logging.getLogger(__name__)


@dataclass
class TokenResponse:
    """
    Decoded body of the access token endpoint.

    access_token and scope are always sent, the rest only come back for
    online (per-user) tokens.
    """

    access_token: str
    scope: str
    expires_in: int = None
    associated_user_scope: str = None
    associated_user: dict = None
    # Whatever we couldn't match.
    cruft: dict = field(default_factory=dict)

    def remaining_params(self):
        """Everything except the token and scope, as it came from shopify."""
        params = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in ("access_token", "scope", "cruft")
            and getattr(self, f.name) is not None
        }
        params.update(self.cruft)
        return params


def coerce_into_token_response(token_dict):
    """
    Build a TokenResponse from decoded json, raising ValueError if the
    required keys are missing or have the wrong type.
    """
    if not isinstance(token_dict, dict):
        raise ValueError("Token response is not a json object.")
    for required in ("access_token", "scope"):
        if not isinstance(token_dict.get(required), str):
            raise ValueError(f"Token response is missing {required}.")
    if not token_dict["access_token"]:
        raise ValueError("Token response has an empty access_token.")
    kwargs = {}
    field_by_name = {f.name: f for f in fields(TokenResponse)}
    cruft = kwargs["cruft"] = {}
    for k in token_dict:
        if k in field_by_name and k != "cruft":
            kwargs[k] = token_dict[k]
        else:
            cruft[k] = token_dict[k]
    return TokenResponse(**kwargs)


@zope.interface.implementer(IOAuthClient)
@dataclass
class OAuthClient:
    """Trade the grant code shopify sends to our callback for an access token."""

    api_key: str
    api_secret: str
    timeout: float = 10
    token_url: str = "https://{shop_host}/admin/oauth/access_token"
    # Anything with a requests compatible `post`, ie. a requests.Session.
    http: object = requests

    def get_token_url(self, shop_host):
        return self.token_url.format(shop_host=shop_host)

    def exchange_code(self, shop_url, code):
        """
        Returns a 2-tuple of (token_response, error), exactly one is None.
        """
        try:
            response = self.http.post(
                self.get_token_url(shop_url),
                json={
                    "client_id": self.api_key,
                    "client_secret": self.api_secret,
                    "code": code,
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return None, TokenExchangeFailed(shop_url, f"{e.__class__.__name__}: {e}")

        if not 200 <= response.status_code < 300:
            return None, TokenExchangeFailed(
                shop_url,
                f"Unexpected status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            token_response = coerce_into_token_response(response.json())
        except ValueError as e:
            # requests raises a ValueError subclass for bodies that aren't json.
            return None, TokenExchangeFailed(
                shop_url, f"{e}", status_code=response.status_code
            )
        if token_response.cruft:
            # We save the cruft but don't crash if it exists.
            logger.warning(
                f"Unrecognized keys in token response: {','.join(token_response.cruft.keys())}"
            )
        return token_response, None
