import logging
from typing import Optional

import httpx

from bullet_journal import config
from bullet_journal.errors import AuthError
from bullet_journal.models import Session

logger = logging.getLogger(__name__)

UNEXPECTED_RESPONSE = "Unexpected auth provider response"


class AuthClient:
    """Thin client for a hosted GoTrue-style auth API.

    Errors returned by the provider are raised as ``AuthError`` carrying the
    provider's own message.
    """

    def __init__(self, base_url: str, api_key: Optional[str] = None, client: Optional[httpx.Client] = None):
        headers = {"apikey": api_key} if api_key else {}
        self.http = client or httpx.Client(base_url=base_url.rstrip("/"), headers=headers, timeout=10.0)

    def _request(self, method, path, token=None, **kwargs) -> dict:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        response = self.http.request(method, path, headers=headers, **kwargs)
        if response.status_code >= 400:
            raise AuthError(response.status_code, _error_message(response))
        if not response.content:
            return {}
        return response.json()

    def sign_in(self, email, password) -> Session:
        body = self._request(
            "POST", "/auth/v1/token", params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        user = body.get("user") or {}
        if not body.get("access_token") or not user.get("id"):
            raise AuthError(502, UNEXPECTED_RESPONSE)
        return Session(
            accessToken=body["access_token"],
            refreshToken=body.get("refresh_token"),
            expiresIn=body.get("expires_in"),
            userId=user["id"],
            email=user.get("email"),
        )

    def sign_up(self, email, password) -> dict:
        return self._request("POST", "/auth/v1/signup", json={"email": email, "password": password})

    def reset_password(self, email, redirect_to=None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        logger.info("Requesting password reset, redirect to %s", redirect_to)
        self._request("POST", "/auth/v1/recover", params=params, json={"email": email})

    def update_password(self, token, password) -> dict:
        return self._request("PUT", "/auth/v1/user", token=token, json={"password": password})

    def get_user(self, token) -> str:
        user_id = self._request("GET", "/auth/v1/user", token=token).get("id")
        if not user_id:
            raise AuthError(502, UNEXPECTED_RESPONSE)
        return user_id


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Auth request failed with {response.status_code}"
    for key in ("msg", "message", "error_description", "error"):
        if isinstance(body, dict) and body.get(key):
            return str(body[key])
    return f"Auth request failed with {response.status_code}"


def create_auth_client():
    if not config.AUTH_BASE:
        return None
    return AuthClient(config.AUTH_BASE, config.AUTH_API_KEY)
