"""
OAuth2 credential provider for the Calendar and Gmail clients.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class GoogleAuth:
    def __init__(self, credentials_path: str, token_path: str, scopes: List[str]):
        self.credentials_path = credentials_path
        self.token_path = token_path
        self.scopes = scopes

    def get_credential(self) -> Credentials:
        """Return a usable credential, running the consent flow if needed.

        A cached token is tried first. Without one, the installed-app flow
        opens a browser for consent and the resulting refresh token is
        written to the token file for the next run. There is no retry; a
        failure raises AuthenticationError and the caller decides.
        """
        saved = self._load_saved_credentials()
        if saved is not None:
            logger.info("Using saved credentials from %s", self.token_path)
            if saved.valid:
                return saved
            # The token file holds no access token or expiry, so refresh up front
            if saved.refresh_token:
                try:
                    saved.refresh(Request())
                except GoogleAuthError as e:
                    raise AuthenticationError(f"Authentication failed: could not refresh token: {e}") from e
                return saved

        logger.info("No saved credentials, starting OAuth flow")
        client_keys = self._load_client_keys()
        try:
            flow = InstalledAppFlow.from_client_secrets_file(self.credentials_path, self.scopes)
            creds = flow.run_local_server(port=0, timeout_seconds=300)
        except Exception as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e

        if creds is None:
            raise AuthenticationError("Authentication failed: consent flow returned no credentials")

        if creds.refresh_token:
            self._save_credentials(client_keys, creds.refresh_token)
            logger.info("Credentials saved to %s", self.token_path)
        return creds

    def _load_saved_credentials(self) -> Optional[Credentials]:
        if not os.path.exists(self.token_path):
            return None
        try:
            return Credentials.from_authorized_user_file(self.token_path, self.scopes)
        except (ValueError, OSError) as e:
            logger.warning("Ignoring unreadable token file %s: %s", self.token_path, e)
            return None

    def _load_client_keys(self) -> Dict[str, Any]:
        if not os.path.exists(self.credentials_path):
            raise AuthenticationError(
                f"credentials.json not found at {self.credentials_path}. "
                "Please download it from Google Cloud Console and place it in the project directory."
            )
        try:
            with open(self.credentials_path, 'r') as f:
                keys = json.load(f)
        except (ValueError, OSError) as e:
            raise AuthenticationError(f"Could not read {self.credentials_path}: {e}") from e

        key = keys.get('installed') or keys.get('web') or {}
        if not key.get('client_id') or not key.get('client_secret'):
            raise AuthenticationError(
                "credentials.json missing client_id/client_secret (expected OAuth client credentials)."
            )
        return key

    def _save_credentials(self, client_keys: Dict[str, Any], refresh_token: str):
        payload = {
            'type': 'authorized_user',
            'client_id': client_keys['client_id'],
            'client_secret': client_keys['client_secret'],
            'refresh_token': refresh_token,
        }
        with open(self.token_path, 'w') as token:
            json.dump(payload, token, indent=2)
