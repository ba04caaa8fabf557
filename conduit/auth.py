"""Token exchange with Finicity and Ocrolus.

Each provider returns its token as a value; callers hand it to the API
client that needs it. The two providers deliberately keep their own success
conventions: Finicity requires HTTP 200 plus a token, Ocrolus only requires a
usable ``access_token`` in the body.
"""

from typing import Optional

import requests

from conduit.errors import AuthError
from conduit.logger import get_logger

logger = get_logger("conduit.auth")

FINICITY_AUTH_URL = "https://api.finicity.com/aggregation/v2/partners/authentication"
OCROLUS_AUTH_URL = "https://auth.ocrolus.com/oauth/token"
OCROLUS_AUDIENCE = "https://api.ocrolus.com/"


def _parse_json(response: requests.Response) -> Optional[dict]:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def authenticate_finicity(
    partner_id: str,
    partner_secret: str,
    app_key: str,
    session: Optional[requests.Session] = None,
) -> str:
    """Exchange Finicity partner credentials for an app token.

    Raises:
        AuthError: If the HTTP status is not 200 or no token is returned
    """
    logger.info("Authenticating with Finicity...")
    session = session or requests.Session()

    try:
        response = session.post(
            FINICITY_AUTH_URL,
            headers={
                "Finicity-App-Key": app_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            json={"partnerId": partner_id, "partnerSecret": partner_secret},
        )
    except requests.RequestException as e:
        raise AuthError(f"Finicity authentication request failed: {e}") from e

    if response.status_code != 200:
        raise AuthError(
            "Finicity authentication failed",
            status_code=response.status_code,
            body=response.text,
        )

    data = _parse_json(response) or {}
    token = data.get("token")
    if not token:
        raise AuthError(
            "Failed to extract token from Finicity response",
            status_code=response.status_code,
            body=response.text,
        )

    logger.info("Finicity authentication successful")
    return token


def authenticate_ocrolus(
    client_id: str,
    client_secret: str,
    session: Optional[requests.Session] = None,
) -> str:
    """Run the OAuth2 client-credentials grant against Ocrolus.

    Raises:
        AuthError: If the body carries no usable access_token
    """
    logger.info("Authenticating with Ocrolus...")
    session = session or requests.Session()

    try:
        response = session.post(
            OCROLUS_AUTH_URL,
            headers={"Content-Type": "application/json"},
            json={
                "client_id": client_id,
                "client_secret": client_secret,
                "audience": OCROLUS_AUDIENCE,
                "grant_type": "client_credentials",
            },
        )
    except requests.RequestException as e:
        raise AuthError(f"Ocrolus authentication request failed: {e}") from e

    data = _parse_json(response) or {}
    token = data.get("access_token")
    if not token or token == "null":
        raise AuthError(
            "Failed to authenticate with Ocrolus",
            status_code=response.status_code,
            body=response.text,
        )

    logger.info("Ocrolus authentication successful")
    return token
