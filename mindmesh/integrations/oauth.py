"""OAuth2 authorization-code helpers for Google Calendar and Notion.

Token responses are returned to the caller for encrypted storage; nothing here
logs or persists raw tokens.
"""

import logging
import os
from typing import Dict, Optional
from urllib.parse import urlencode

import requests
from dotenv import load_dotenv
from google.auth.exceptions import GoogleAuthError
from google_auth_oauthlib.flow import Flow

from mindmesh.integrations.google_calendar import (
    GOOGLE_TOKEN_URI,
    SCOPES as GOOGLE_CALENDAR_SCOPES,
    build_credentials,
    refresh_credentials,
)
from mindmesh.models.constants import HTTP_TIMEOUT_SEC

load_dotenv()

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
NOTION_AUTH_URI = "https://api.notion.com/v1/oauth/authorize"
NOTION_TOKEN_URI = "https://api.notion.com/v1/oauth/token"


class OAuthError(Exception):
    """Raised when a provider rejects a token request or is not configured."""


class GoogleCalendarOAuth:
    """Authorization-code flow for Google Calendar (offline access).

    The consent URL and code exchange run on separate requests, so PKCE is off:
    a verifier generated for the URL would not survive to the exchange.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ):
        self.client_id = client_id or os.getenv("GOOGLE_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("GOOGLE_CLIENT_SECRET")
        self.redirect_uri = redirect_uri or os.getenv("GOOGLE_REDIRECT_URI")

    def _require_config(self) -> None:
        if not self.client_id or not self.client_secret or not self.redirect_uri:
            raise OAuthError("Google OAuth is not configured (GOOGLE_CLIENT_ID/SECRET/REDIRECT_URI)")

    def _flow(self, state: Optional[str] = None) -> Flow:
        self._require_config()
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        return Flow.from_client_config(
            client_config,
            scopes=GOOGLE_CALENDAR_SCOPES,
            redirect_uri=self.redirect_uri,
            state=state,
            autogenerate_code_verifier=False,
        )

    def build_auth_url(self, state: str) -> str:
        """Consent URL; `prompt=consent` forces a refresh token on every grant."""
        url, _ = self._flow(state).authorization_url(
            access_type="offline",
            prompt="consent",
        )
        return url

    def exchange_code(self, code: str) -> Dict:
        """Exchange an authorization code.

        Returns:
            Dict with access_token, refresh_token, expires_at, integration_data
        """
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.warning(f"Google code exchange failed: {type(e).__name__}")
            raise OAuthError(f"Google token request failed: {type(e).__name__}") from e

        creds = flow.credentials
        if not creds.token:
            raise OAuthError("Google token response missing access_token")
        return {
            "access_token": creds.token,
            "refresh_token": creds.refresh_token,
            "expires_at": creds.expiry,
            "integration_data": {
                "scope": " ".join(creds.scopes or []),
                "token_type": "Bearer",
            },
        }

    def refresh(self, refresh_token: str) -> Dict:
        """Obtain a new access token from a refresh token."""
        self._require_config()
        creds = build_credentials(None, refresh_token, client_id=self.client_id, client_secret=self.client_secret)
        try:
            refresh_credentials(creds)
        except (GoogleAuthError, requests.RequestException) as e:
            logger.warning(f"Google token refresh failed: {type(e).__name__}")
            raise OAuthError(f"Google token refresh failed: {type(e).__name__}") from e
        return {"access_token": creds.token, "expires_at": creds.expiry}


class NotionOAuth:
    """Authorization-code flow for a Notion public integration."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ):
        self.client_id = client_id or os.getenv("NOTION_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("NOTION_CLIENT_SECRET")
        self.redirect_uri = redirect_uri or os.getenv("NOTION_REDIRECT_URI")

    def _require_config(self) -> None:
        if not self.client_id or not self.client_secret or not self.redirect_uri:
            raise OAuthError("Notion OAuth is not configured (NOTION_CLIENT_ID/SECRET/REDIRECT_URI)")

    def build_auth_url(self, state: str) -> str:
        self._require_config()
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "owner": "user",
            "state": state,
        }
        return f"{NOTION_AUTH_URI}?{urlencode(params)}"

    def exchange_code(self, code: str) -> Dict:
        """Exchange an authorization code (client credentials via HTTP Basic auth).

        Notion access tokens do not expire and come without a refresh token.
        """
        self._require_config()
        try:
            resp = requests.post(
                NOTION_TOKEN_URI,
                auth=(self.client_id, self.client_secret),
                json={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                },
                timeout=HTTP_TIMEOUT_SEC,
            )
        except requests.RequestException as e:
            raise OAuthError(f"Notion token request failed: {type(e).__name__}") from e
        if not resp.ok:
            logger.warning(f"Notion token endpoint returned {resp.status_code}")
            raise OAuthError(f"Notion token request failed with status {resp.status_code}")

        payload = resp.json()
        if not payload.get("access_token"):
            raise OAuthError("Notion token response missing access_token")
        return {
            "access_token": payload["access_token"],
            "refresh_token": None,
            "expires_at": None,
            "integration_data": {
                "workspace_name": payload.get("workspace_name"),
                "workspace_id": payload.get("workspace_id"),
                "bot_id": payload.get("bot_id"),
                "owner": payload.get("owner"),
            },
        }
