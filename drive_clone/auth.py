"""Google credentials and API resources."""

import logging
import os
import sys
from typing import Optional, Tuple

from google.auth import default
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = [
    'https://www.googleapis.com/auth/drive',
    'https://www.googleapis.com/auth/forms.body.readonly',
]


def get_credentials(credentials_file: Optional[str] = None, token_file: str = 'token.json'):
    """
    Resolve credentials.

    Colab: interactive notebook auth. With an OAuth client secrets file:
    installed-app flow, token cached in `token_file`. Otherwise application
    default credentials (service account, gcloud).
    """
    if 'google.colab' in sys.modules:
        from google.colab import auth
        auth.authenticate_user()
        creds, _ = default(scopes=SCOPES)
        return creds

    if credentials_file:
        creds = None
        if os.path.exists(token_file):
            creds = Credentials.from_authorized_user_file(token_file, SCOPES)

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                if not os.path.exists(credentials_file):
                    raise FileNotFoundError(
                        f"❌ {credentials_file} not found. Please download it from Google Cloud Console."
                    )
                flow = InstalledAppFlow.from_client_secrets_file(credentials_file, SCOPES)
                creds = flow.run_local_server(port=0)

            with open(token_file, 'w', encoding='utf-8') as token:
                token.write(creds.to_json())

        return creds

    creds, _ = default(scopes=SCOPES)
    return creds


def build_services(creds) -> Tuple[object, object]:
    """
    Returns:
        Tuple[drive v3 resource, forms v1 resource]
    """
    drive_service = build('drive', 'v3', credentials=creds, cache_discovery=False)
    forms_service = build('forms', 'v1', credentials=creds, cache_discovery=False)
    logger.info("✅ Authentication successful!")
    return drive_service, forms_service
