"""
Google Drive OAuth2 authentication module.

This module loads, refreshes and persists the authorized-user token used to
reach the Drive API, running the installed-app OAuth flow when no usable
token exists.
"""

from pathlib import Path
from typing import List, Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from recipe_importer.config import get_settings
from recipe_importer.utils.errors import DriveAuthenticationError
from recipe_importer.utils.logging import get_logger

logger = get_logger(__name__)

# drive.file lets us delete the temporary copies made when converting .doc files
SCOPES = [
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/drive.file",
]


class GoogleDriveAuth:
    """Keep a usable Drive OAuth2 token on disk and hand out its credentials."""

    def __init__(
        self,
        credentials_path: Optional[Path] = None,
        token_path: Optional[Path] = None,
        scopes: Optional[List[str]] = None,
        oauth_port: Optional[int] = None,
    ) -> None:
        """
        Set up token handling.

        Args:
            credentials_path: Path to OAuth2 client secrets JSON file
            token_path: Path to store/load the authorized-user token
            scopes: Scopes requested during the OAuth flow
            oauth_port: Local port for the OAuth redirect
        """
        self.settings = get_settings()
        self.credentials_path = credentials_path or self.settings.drive_credentials_path
        self.token_path = token_path or self.settings.drive_token_path
        self.scopes = scopes or SCOPES
        self.oauth_port = oauth_port if oauth_port is not None else self.settings.oauth_port

        self._credentials: Optional[Credentials] = None

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None and self._credentials.valid

    async def authenticate(self, force_reauth: bool = False) -> Credentials:
        """
        Return valid credentials, running the browser flow if needed.

        Args:
            force_reauth: Ignore any saved token and run the OAuth flow

        Returns:
            Valid credentials

        Raises:
            DriveAuthenticationError: If authentication fails
        """
        try:
            if not force_reauth:
                self._credentials = self._load_token()

            if self.is_authenticated:
                logger.info("Found a valid Google token")
                return self._credentials

            logger.warning("Saved credentials invalid or not found, proceeding with new authentication")
            self._credentials = self._run_oauth_flow()
            self._save_token()
        except DriveAuthenticationError:
            raise
        except Exception as e:
            logger.error(f"Google Drive authentication failed: {e}")
            raise DriveAuthenticationError(f"Authentication failed: {e}") from e

        logger.info("Successfully authenticated with Google Drive")
        return self._credentials

    def _run_oauth_flow(self) -> Credentials:
        """
        Run the installed-app OAuth2 flow on a local redirect server.

        Raises:
            DriveAuthenticationError: If the flow fails
        """
        if not self.credentials_path.exists():
            raise DriveAuthenticationError(
                f"No OAuth client secrets at {self.credentials_path}; "
                "create a Desktop OAuth client in the Google Cloud Console and save its JSON there"
            )

        try:
            flow = InstalledAppFlow.from_client_secrets_file(
                str(self.credentials_path),
                self.scopes,
            )
            return flow.run_local_server(
                port=self.oauth_port,
                access_type="offline",
                prompt="consent",
                authorization_prompt_message="Authorize the recipe importer in your browser: {url}",
                success_message="Drive access granted. This tab can be closed.",
            )
        except Exception as e:
            raise DriveAuthenticationError(f"OAuth flow failed: {e}") from e

    def _load_token(self) -> Optional[Credentials]:
        """
        Load the saved token, refreshing it when expired.

        An unreadable or unrefreshable token file is deleted.

        Returns:
            Credentials if a usable token exists, None otherwise
        """
        if not self.token_path.exists():
            logger.debug("Google token file does not exist")
            return None

        try:
            credentials = Credentials.from_authorized_user_file(str(self.token_path), self.scopes)
            if credentials.expired and credentials.refresh_token:
                logger.info("Refreshing expired Google token")
                credentials.refresh(Request())
                self._credentials = credentials
                self._save_token()
            return credentials
        except (RefreshError, ValueError, OSError) as e:
            logger.debug(f"Failed to load token: {e}")
            logger.info("Existing Google token invalid")
            self._delete_token()
            return None

    def _save_token(self) -> None:
        """Save current credentials to the token file."""
        if not self._credentials:
            return

        if not self._credentials.refresh_token:
            logger.warning("No Google refresh token obtained. Please check your Google API settings.")

        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_path, "w") as token_file:
            token_file.write(self._credentials.to_json())
        logger.debug(f"Saved token to {self.token_path}")

    def _delete_token(self) -> None:
        try:
            self.token_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete invalid Google token file: {e}")


def create_auth_manager() -> GoogleDriveAuth:
    """Create an auth manager from settings."""
    return GoogleDriveAuth()
