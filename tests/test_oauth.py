"""Tests for the Google Calendar and Notion OAuth helpers."""

from datetime import datetime
from urllib.parse import parse_qs, urlparse
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from mindmesh.integrations.oauth import GoogleCalendarOAuth, NotionOAuth, OAuthError


def _token_response(payload, ok=True, status_code=200):
    resp = MagicMock()
    resp.ok = ok
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


@pytest.fixture
def google_oauth():
    return GoogleCalendarOAuth("client-id", "client-secret", "https://app.example/callback")


@pytest.fixture
def notion_oauth():
    return NotionOAuth("notion-id", "notion-secret", "https://app.example/notion")


class TestGoogleCalendarOAuth:
    """Test the Google authorization-code flow."""

    def test_auth_url_requests_offline_consent(self, google_oauth):
        url = google_oauth.build_auth_url(state="user-1")
        qs = parse_qs(urlparse(url).query)

        assert qs["state"] == ["user-1"]
        assert qs["access_type"] == ["offline"]
        assert qs["prompt"] == ["consent"]
        assert "https://www.googleapis.com/auth/calendar.events" in qs["scope"][0]

    def test_unconfigured_raises(self, monkeypatch):
        for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI"):
            monkeypatch.delenv(name, raising=False)
        with pytest.raises(OAuthError):
            GoogleCalendarOAuth(client_id="", client_secret="", redirect_uri="").build_auth_url("u")

    def test_exchange_code(self, google_oauth):
        expiry = datetime(2026, 1, 1, 13, 0)
        flow = MagicMock()
        # Avoid real token patterns (secret scanner will flag them).
        flow.credentials.token = "test_access_token_value"
        flow.credentials.refresh_token = "test_refresh_token_value"
        flow.credentials.expiry = expiry
        flow.credentials.scopes = ["calendar"]
        with patch("mindmesh.integrations.oauth.Flow") as flow_cls:
            flow_cls.from_client_config.return_value = flow
            tokens = google_oauth.exchange_code("auth-code")

        flow.fetch_token.assert_called_once_with(code="auth-code")
        config = flow_cls.from_client_config.call_args[0][0]
        assert config["web"]["client_id"] == "client-id"
        assert flow_cls.from_client_config.call_args[1]["autogenerate_code_verifier"] is False
        assert tokens["access_token"] == "test_access_token_value"
        assert tokens["refresh_token"] == "test_refresh_token_value"
        assert tokens["expires_at"] == expiry

    def test_exchange_rejected(self, google_oauth):
        with patch("mindmesh.integrations.oauth.Flow") as flow_cls:
            flow_cls.from_client_config.return_value.fetch_token.side_effect = ValueError("invalid_grant")
            with pytest.raises(OAuthError):
                google_oauth.exchange_code("bad-code")

    def test_refresh_uses_google_auth_credentials(self, google_oauth):
        expiry = datetime(2026, 1, 1, 13, 0)

        def fake_refresh(creds):
            assert creds.refresh_token == "test_refresh_token_value"
            assert creds.client_id == "client-id"
            creds.token = "test_new_access_value"
            creds.expiry = expiry
            return creds

        with patch("mindmesh.integrations.oauth.refresh_credentials", side_effect=fake_refresh):
            refreshed = google_oauth.refresh("test_refresh_token_value")

        assert refreshed == {"access_token": "test_new_access_value", "expires_at": expiry}

    def test_refresh_rejected(self, google_oauth):
        with patch("mindmesh.integrations.oauth.refresh_credentials",
                   side_effect=RefreshError("invalid_grant")):
            with pytest.raises(OAuthError):
                google_oauth.refresh("test_refresh_token_value")



class TestNotionOAuth:
    """Test the Notion authorization-code flow."""

    def test_exchange_uses_basic_auth(self, notion_oauth):
        payload = {"access_token": "test_notion_token_value", "workspace_name": "Home", "bot_id": "bot"}
        with patch("mindmesh.integrations.oauth.requests.post", return_value=_token_response(payload)) as post:
            tokens = notion_oauth.exchange_code("auth-code")

        assert post.call_args[1]["auth"] == ("notion-id", "notion-secret")
        assert tokens["refresh_token"] is None
        assert tokens["expires_at"] is None
        assert tokens["integration_data"]["workspace_name"] == "Home"

    def test_auth_url_carries_state(self, notion_oauth):
        qs = parse_qs(urlparse(notion_oauth.build_auth_url("user-9")).query)
        assert qs["state"] == ["user-9"]
        assert qs["owner"] == ["user"]
