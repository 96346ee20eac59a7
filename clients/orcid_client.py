# clients/orcid_client.py
import logging
import os
import requests
from typing import Dict, Optional
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15

# env var -> settings key
REQUIRED_SETTINGS = {
    "ORCID_TOKEN_URL": "token_url",
    "ORCID_API_URL": "api_url",
    "ORCID_CLIENT_ID": "client_id",
    "ORCID_CLIENT_SECRET": "client_secret",
    "ORCID_REDIRECT_URI": "redirect_uri",
}


class OrcidConfigurationError(ValueError):
    """Raised when ORCID OAuth settings are missing from the environment."""


class OrcidAuthError(Exception):
    """Upstream ORCID failure. `message` is safe to show to the caller."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_orcid_settings() -> Dict[str, str]:
    settings = {key: os.getenv(env_name) for env_name, key in REQUIRED_SETTINGS.items()}
    missing = [env_name for env_name, key in REQUIRED_SETTINGS.items() if not settings[key]]
    if missing:
        raise OrcidConfigurationError(f"Missing ORCID configuration: {', '.join(missing)}")
    return settings


def build_authorize_url(force_prompt: bool = False) -> str:
    """
    Browser redirect target for the ORCID /authenticate flow.
    force_prompt adds prompt=login so ORCID asks for credentials again.
    """
    auth_url = os.getenv("ORCID_AUTH_URL")
    client_id = os.getenv("ORCID_CLIENT_ID")
    redirect_uri = os.getenv("ORCID_REDIRECT_URI")
    if not all([auth_url, client_id, redirect_uri]):
        raise OrcidConfigurationError("Missing ORCID configuration: ORCID_AUTH_URL, ORCID_CLIENT_ID and ORCID_REDIRECT_URI are required")

    params = {
        "client_id": client_id,
        "response_type": "code",
        "scope": "/authenticate",
        "redirect_uri": redirect_uri,
    }
    if force_prompt:
        params["prompt"] = "login"
    return f"{auth_url}?{urlencode(params)}"


def _post_token_request(data: Dict[str, str], settings: Dict[str, str]) -> requests.Response:
    return requests.post(
        settings["token_url"],
        data=data,
        headers={"Accept": "application/json"},
        timeout=REQUEST_TIMEOUT,
    )


def _error_description(resp: requests.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error_description")
    return None


def exchange_code_for_tokens(code: str) -> Dict:
    """
    Exchanges an authorization code at the ORCID token endpoint.
    Returns the raw token payload: access_token, refresh_token, expires_in, orcid, name.
    """
    settings = get_orcid_settings()
    resp = _post_token_request({
        "client_id": settings["client_id"],
        "client_secret": settings["client_secret"],
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings["redirect_uri"],
    }, settings)

    if not resp.ok:
        description = _error_description(resp)
        logger.error(f"❌ ORCID token exchange failed ({resp.status_code}): {description or resp.text[:200]}")
        raise OrcidAuthError(description or "Failed to exchange code for tokens", resp.status_code)

    data = resp.json()
    logger.info(f"✅ Token exchange successful - ORCID: {data.get('orcid')}")
    return data


def refresh_tokens(refresh_token: str) -> Dict:
    settings = get_orcid_settings()
    resp = _post_token_request({
        "client_id": settings["client_id"],
        "client_secret": settings["client_secret"],
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
    }, settings)

    if not resp.ok:
        logger.error(f"❌ ORCID token refresh failed ({resp.status_code}): {resp.text[:200]}")
        raise OrcidAuthError("Failed to refresh token", resp.status_code)

    return resp.json()


def fetch_record(orcid: str, access_token: str) -> Dict:
    settings = get_orcid_settings()
    resp = requests.get(
        f"{settings['api_url'].rstrip('/')}/{orcid}/record",
        headers={
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        },
        timeout=REQUEST_TIMEOUT,
    )

    if not resp.ok:
        logger.error(f"❌ Failed to fetch ORCID profile ({resp.status_code})")
        raise OrcidAuthError("Failed to fetch ORCID profile", resp.status_code)

    return resp.json()


def extract_profile(record: Dict) -> Dict[str, Optional[str]]:
    """
    Pulls display name, primary email and first employment out of an ORCID v3 record.
    """
    person = record.get("person") or {}
    name_block = person.get("name") or {}
    given = ((name_block.get("given-names") or {}).get("value")) or ""
    family = ((name_block.get("family-name") or {}).get("value")) or ""
    name = f"{given} {family}".strip() or "Unknown User"

    emails = ((person.get("emails") or {}).get("email")) or []
    primary = next((e.get("email") for e in emails if e.get("primary") and e.get("email")), None)
    email = primary or (emails[0].get("email") if emails else None) or None

    groups = (((record.get("activities-summary") or {}).get("employments") or {}).get("affiliation-group")) or []
    institution = None
    if groups:
        summaries = groups[0].get("summaries") or []
        if summaries:
            employment = summaries[0].get("employment-summary") or {}
            institution = (employment.get("organization") or {}).get("name") or None

    return {"name": name, "email": email, "institution": institution}
