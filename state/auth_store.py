# File: state/auth_store.py
from typing import Optional
import json
import logging

from clients.nobs_api_client import ApiError, NobsApiClient
from state.draft_store import LocalStorage
from state.state_schema import UserProfile

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "nobs_access_token"
USER_PROFILE_KEY = "nobs_user_profile"
FORCE_REAUTH_KEY = "nobs_force_reauth"


class AuthStore:
    """
    Client-side session: the API token and the signed-in profile, persisted in LocalStorage.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self.user: Optional[UserProfile] = self._stored_profile()
        self.error: Optional[str] = None

    def _stored_profile(self) -> Optional[UserProfile]:
        raw = self.storage.get_item(USER_PROFILE_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            # Corrupted profile, drop it
            self.storage.remove_item(USER_PROFILE_KEY)
            return None

    @property
    def token(self) -> Optional[str]:
        return self.storage.get_item(ACCESS_TOKEN_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)

    def login_with_backend(self, token: str, backend_user: dict) -> None:
        profile: UserProfile = {
            "orcid": backend_user["orcid"],
            "name": backend_user.get("name") or "Unknown User",
            "email": backend_user.get("email") or None,
            "institution": backend_user.get("institution") or None,
        }
        self.storage.set_item(ACCESS_TOKEN_KEY, token)
        self.storage.set_item(USER_PROFILE_KEY, json.dumps(profile))
        self.storage.remove_item(FORCE_REAUTH_KEY)
        self.user = profile
        self.error = None

    def handle_callback(self, api: NobsApiClient, code: Optional[str], error: Optional[str] = None, error_description: Optional[str] = None) -> UserProfile:
        """
        Completes the ORCID redirect: sends the code to the backend and stores the session.
        """
        if error:
            raise ApiError(error_description or error)
        if not code:
            raise ApiError("No authorization code received")

        try:
            result = api.login(code)
        except ApiError as e:
            self.error = e.message
            raise
        self.login_with_backend(result["token"], result["user"])
        return self.user

    def _clear(self) -> None:
        self.storage.remove_item(ACCESS_TOKEN_KEY)
        self.storage.remove_item(USER_PROFILE_KEY)
        self.user = None

    def logout(self, api: Optional[NobsApiClient] = None) -> None:
        token = self.token
        if api is not None and token:
            try:
                api.logout(token)
            except ApiError as e:
                logger.warning(f"Server-side logout failed: {e.message}")
        self._clear()
        self.error = None
        self.storage.set_item(FORCE_REAUTH_KEY, "true")

    def should_force_reauth(self) -> bool:
        return self.storage.get_item(FORCE_REAUTH_KEY) == "true"

    def init_auth(self) -> None:
        profile = self._stored_profile()
        if profile and self.token:
            self.user = profile
        else:
            self._clear()

    def verify_session(self, api: NobsApiClient) -> bool:
        """
        Pings /api/auth/check. Only an explicit 401 ends the session;
        network trouble leaves it untouched.
        """
        token = self.token
        if not token:
            return False
        try:
            api.check(token)
        except ApiError as e:
            if e.is_auth_rejection:
                logger.info("Session rejected by server, signing out")
                self._clear()
                return False
            logger.warning(f"Session check failed, keeping session: {e.message}")
        return self.is_authenticated

    def update_user(self, **changes) -> None:
        if self.user is None:
            return
        self.user = {**self.user, **changes}
        self.storage.set_item(USER_PROFILE_KEY, json.dumps(self.user))
