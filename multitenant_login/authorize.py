"""
Authorization URL assembly for the login redirect.
{authority}/oauth2/authorize with response_type, client_id, redirect_uri, state, resource[, prompt].
"""
import secrets
from urllib.parse import urlencode

AUTHORIZE_PATH = "/oauth2/authorize"
ADMIN_CONSENT = "prompt=admin_consent"


class EncodingFailure(ValueError):
    """A configured value could not be form-encoded."""


def generate_state() -> str:
    """Per-request correlation value (random-state mode only)."""
    return secrets.token_urlsafe(48)


def wants_admin_consent(consent: str | None) -> bool:
    # Exact match only: "yes", "Y", "true" and "" all leave consent off
    return consent == "y"


def build_authorize_url(
    *,
    authority: str,
    client_id: str,
    redirect_uri: str,
    state: str,
    resource: str,
    admin_consent: bool = False,
) -> str:
    """
    Build the provider /oauth2/authorize URL. Values are form-encoded (space -> '+', UTF-8 %HH);
    response_type=code and prompt=admin_consent are emitted verbatim.
    """
    try:
        query = urlencode(
            {
                "client_id": client_id,
                "redirect_uri": redirect_uri,
                "state": state,
                "resource": resource,
            }
        )
    except UnicodeEncodeError as e:
        raise EncodingFailure(str(e)) from e
    url = f"{authority}{AUTHORIZE_PATH}?response_type=code&{query}"
    if admin_consent:
        url += f"&{ADMIN_CONSENT}"
    return url
