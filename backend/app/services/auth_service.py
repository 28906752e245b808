# backend/app/services/auth_service.py

from functools import lru_cache
from typing import Any, Dict, Optional

import requests

from app.core.config_loader import settings
from app.core.errors import (
    InvalidCredentials,
    LoginFailed,
    ProfileFetchFailed,
    ServiceUnavailable,
    Unauthenticated,
    UpstreamTimeout,
)
from app.core.logger import logger
from app.models.user_models import AuthTokens, UserOut


LOGOUT_TIMEOUT_SECONDS = 5.0


def _passthrough_status(resp: requests.Response) -> int:
    # only real error statuses are forwarded to our clients
    return resp.status_code if resp.status_code >= 400 else 502


def _is_success(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


def _tokens_from(data: Any) -> Optional[AuthTokens]:
    if not isinstance(data, dict):
        return None
    access_token = data.get("access_token")
    refresh_token = data.get("refresh_token")
    # a response with only one of the two tokens is a failure, not a partial success
    if not access_token or not refresh_token:
        return None
    return AuthTokens(access_token=access_token, refresh_token=refresh_token)


class AuthServiceClient:
    """
    Proxy for the external authorization service. Every call is a single
    HTTP request with a hard timeout; nothing is retried.
    """

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # -------------------------------------------------------
    # LOGIN
    # -------------------------------------------------------
    def login(self, email: str, password: str) -> AuthTokens:
        try:
            resp = requests.post(
                self._url("/authorization/login"),
                json={"email": email, "password": password},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Login request timed out: %s", e)
            raise UpstreamTimeout()
        except requests.exceptions.RequestException as e:
            logger.error("Login request failed: %s", e)
            raise ServiceUnavailable()

        if not _is_success(resp):
            logger.warning("Auth service rejected login for %s (status=%s)", email, resp.status_code)
            if resp.status_code == 401:
                raise InvalidCredentials()
            raise LoginFailed(status_code=_passthrough_status(resp))

        try:
            tokens = _tokens_from(resp.json())
        except ValueError:
            logger.error("Auth service returned a non-JSON login response")
            raise ServiceUnavailable()

        if tokens is None:
            logger.error("Auth service login response is missing tokens")
            raise LoginFailed()
        return tokens

    # -------------------------------------------------------
    # PROFILE
    # -------------------------------------------------------
    def fetch_profile(self, access_token: str, timeout: Optional[float] = None) -> UserOut:
        try:
            resp = requests.get(
                self._url("/users/info"),
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Profile request timed out: %s", e)
            raise UpstreamTimeout()
        except requests.exceptions.RequestException as e:
            logger.error("Profile request failed: %s", e)
            raise ServiceUnavailable()

        if not _is_success(resp):
            if resp.status_code == 401:
                raise Unauthenticated()
            logger.warning("Auth service profile fetch failed (status=%s)", resp.status_code)
            raise ProfileFetchFailed(status_code=_passthrough_status(resp))

        try:
            info: Dict[str, Any] = resp.json()
            return UserOut.from_user_info(info)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Unreadable profile payload from auth service: %s", e)
            raise ServiceUnavailable()

    # -------------------------------------------------------
    # LOGOUT (best effort)
    # -------------------------------------------------------
    def logout(self, access_token: Optional[str], refresh_token: str) -> None:
        try:
            resp = requests.post(
                self._url("/authorization/logout"),
                json={"refresh_token": refresh_token},
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                timeout=LOGOUT_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            logger.error("External logout error: %s", e)
            return

        if not _is_success(resp):
            logger.error("External logout failed: %s", resp.status_code)

    # -------------------------------------------------------
    # TOKEN REFRESH
    # -------------------------------------------------------
    def refresh(self, refresh_token: str) -> Optional[AuthTokens]:
        try:
            resp = requests.post(
                self._url("/authorization/token"),
                json={"refresh_token": refresh_token},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return _tokens_from(resp.json())
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("Error generating access token: %s", e)
            return None


@lru_cache(maxsize=1)
def get_auth_service() -> AuthServiceClient:
    """
    FastAPI dependency factory that returns a shared AuthServiceClient.
    """
    return AuthServiceClient(settings.AUTH_SERVICE_URL, timeout=settings.auth_timeout_seconds)
