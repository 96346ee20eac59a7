# clients/nobs_api_client.py
import logging
import os
import requests
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3333"
REQUEST_TIMEOUT = 30
UPLOAD_TIMEOUT = 300


class ApiError(Exception):
    """Non-success API response. status_code is None for transport failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_auth_rejection(self) -> bool:
        return self.status_code == 401


class NobsApiClient:
    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or os.getenv("NOBS_API_URL", DEFAULT_API_URL)).rstrip("/")
        self.token = token
        self.session = session or requests.Session()

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        token = token or self.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, fallback: str, timeout: int = REQUEST_TIMEOUT, token: Optional[str] = None, **kwargs) -> Dict:
        try:
            resp = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(token),
                timeout=timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"API request {method} {path} failed: {e}")
            raise ApiError(str(e) or fallback)

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if not resp.ok:
            message = fallback
            if isinstance(body, dict):
                message = body.get("error") or body.get("message") or fallback
            raise ApiError(message, resp.status_code)

        return body

    # ---- Auth ----

    def login(self, code: str) -> Dict:
        body = self._request("POST", "/api/auth/login", "Unable to connect to authentication server. Please try again.", json={"code": code})
        if not body.get("user") or not body.get("token"):
            raise ApiError("Invalid response from server")
        return body

    def logout(self, token: Optional[str] = None) -> Dict:
        return self._request("POST", "/api/auth/logout", "Logout failed", token=token)

    def check(self, token: Optional[str] = None) -> Dict:
        return self._request("GET", "/api/auth/check", "Invalid or expired token", token=token)

    def me(self) -> Dict:
        return self._request("GET", "/api/auth/me", "Failed to load profile")

    # ---- Entries ----

    def list_entries(self) -> List[Dict]:
        return self._request("GET", "/api/entries", "Failed to load entries").get("entries", [])

    def get_entry(self, entry_id: str) -> Dict:
        return self._request("GET", f"/api/entries/{entry_id}", "Entry not found")["entry"]

    def create_entry(self, fields: Dict[str, str], files: List[Tuple[str, Tuple[str, bytes, str]]]) -> Dict:
        """
        fields: multipart text fields; files: (field name, (filename, data, content type)).
        """
        body = self._request(
            "POST",
            "/api/entries",
            "Failed to submit entry",
            timeout=UPLOAD_TIMEOUT,
            data=fields,
            files=files or None,
        )
        return body.get("entry", body)

    def delete_entry(self, entry_id: str) -> Dict:
        return self._request("DELETE", f"/api/entries/{entry_id}", "Failed to delete entry")
