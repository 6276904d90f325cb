"""
Tests for Google Drive OAuth2 token handling.
"""

from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError, TransportError

from recipe_importer.google_drive.auth import SCOPES, GoogleDriveAuth
from recipe_importer.utils.errors import DriveAuthenticationError

AUTH_MODULE = "recipe_importer.google_drive.auth"


def fake_credentials(valid=True, expired=False, refresh_token="refresh"):
    credentials = MagicMock()
    credentials.valid = valid
    credentials.expired = expired
    credentials.refresh_token = refresh_token
    credentials.to_json.return_value = '{"token": "abc"}'
    return credentials


@pytest.fixture
def auth(tmp_path):
    return GoogleDriveAuth(
        credentials_path=tmp_path / "googleDriveCredentials.json",
        token_path=tmp_path / "googleDriveToken.json",
    )


class TestGoogleDriveAuth:
    """Test token loading, refresh and the OAuth flow."""

    def test_defaults_from_settings(self):
        auth = GoogleDriveAuth()

        assert auth.credentials_path.name == "googleDriveCredentials.json"
        assert auth.token_path.name == "googleDriveToken.json"
        assert auth.oauth_port == 3000
        assert auth.scopes == SCOPES

    @pytest.mark.asyncio
    async def test_uses_saved_token(self, auth):
        auth.token_path.write_text("{}")
        credentials = fake_credentials()

        with patch(f"{AUTH_MODULE}.Credentials") as creds_cls, patch(f"{AUTH_MODULE}.InstalledAppFlow") as flow:
            creds_cls.from_authorized_user_file.return_value = credentials
            result = await auth.authenticate()

        assert result is credentials
        assert auth.is_authenticated
        flow.from_client_secrets_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_refreshes_expired_token(self, auth):
        auth.token_path.write_text("{}")
        credentials = fake_credentials(expired=True)

        def refresh(request):
            credentials.expired = False

        credentials.refresh.side_effect = refresh

        with patch(f"{AUTH_MODULE}.Credentials") as creds_cls:
            creds_cls.from_authorized_user_file.return_value = credentials
            await auth.authenticate()

        credentials.refresh.assert_called_once()
        assert auth.token_path.read_text() == '{"token": "abc"}'

    @pytest.mark.asyncio
    async def test_unrefreshable_token_deleted_and_flow_runs(self, auth):
        auth.token_path.write_text("{}")
        auth.credentials_path.write_text("{}")
        stale = fake_credentials(valid=False, expired=True)
        stale.refresh.side_effect = RefreshError("invalid_grant")
        fresh = fake_credentials()

        with patch(f"{AUTH_MODULE}.Credentials") as creds_cls, patch(f"{AUTH_MODULE}.InstalledAppFlow") as flow:
            creds_cls.from_authorized_user_file.return_value = stale
            flow.from_client_secrets_file.return_value.run_local_server.return_value = fresh
            result = await auth.authenticate()

        assert result is fresh
        run_kwargs = flow.from_client_secrets_file.return_value.run_local_server.call_args.kwargs
        assert run_kwargs["port"] == 3000
        assert run_kwargs["access_type"] == "offline"
        assert run_kwargs["prompt"] == "consent"
        # Replaced by the new token
        assert auth.token_path.read_text() == '{"token": "abc"}'

    @pytest.mark.asyncio
    async def test_missing_credentials_file(self, auth):
        with pytest.raises(DriveAuthenticationError, match="No OAuth client secrets"):
            await auth.authenticate()

    @pytest.mark.asyncio
    async def test_force_reauth_ignores_token(self, auth):
        auth.token_path.write_text("{}")
        auth.credentials_path.write_text("{}")

        with patch(f"{AUTH_MODULE}.Credentials") as creds_cls, patch(f"{AUTH_MODULE}.InstalledAppFlow") as flow:
            flow.from_client_secrets_file.return_value.run_local_server.return_value = fake_credentials()
            await auth.authenticate(force_reauth=True)

        creds_cls.from_authorized_user_file.assert_not_called()

    def test_missing_refresh_token_warns(self, auth, caplog):
        auth._credentials = fake_credentials(refresh_token=None)

        auth._save_token()

        assert "No Google refresh token obtained" in caplog.text
        assert auth.token_path.exists()

    @pytest.mark.asyncio
    async def test_network_error_during_refresh(self, auth):
        auth.token_path.write_text("{}")
        credentials = fake_credentials(expired=True)
        credentials.refresh.side_effect = TransportError("no network")

        with patch(f"{AUTH_MODULE}.Credentials") as creds_cls:
            creds_cls.from_authorized_user_file.return_value = credentials
            with pytest.raises(DriveAuthenticationError, match="no network") as exc_info:
                await auth.authenticate()

        assert isinstance(exc_info.value.__cause__, TransportError)
        # Token kept for the next run
        assert auth.token_path.exists()

    @pytest.mark.asyncio
    async def test_token_save_failure(self, auth, tmp_path):
        auth.credentials_path.write_text("{}")
        blocker = tmp_path / "tokens"
        blocker.write_text("")
        auth.token_path = blocker / "googleDriveToken.json"

        with patch(f"{AUTH_MODULE}.InstalledAppFlow") as flow:
            flow.from_client_secrets_file.return_value.run_local_server.return_value = fake_credentials()
            with pytest.raises(DriveAuthenticationError):
                await auth.authenticate()
