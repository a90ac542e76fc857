# One-time helper: run the OAuth consent flow and store the Drive token used by
# core/drive_client.py when STORAGE_BACKEND=sheets.
from __future__ import annotations

from google_auth_oauthlib.flow import InstalledAppFlow
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from core.drive_client import CREDS_DIR, SCOPES, TOKEN_FILE

CLIENT_SECRET_FILE = CREDS_DIR / "drive_oauth_client.json"


def main():
    if not CLIENT_SECRET_FILE.exists():
        raise SystemExit(
            f"Missing {CLIENT_SECRET_FILE}. "
            "Download the OAuth client JSON from the Cloud console and save it there."
        )

    creds = None
    if TOKEN_FILE.exists():
        creds = Credentials.from_authorized_user_file(str(TOKEN_FILE), SCOPES)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            flow = InstalledAppFlow.from_client_secrets_file(str(CLIENT_SECRET_FILE), SCOPES)
            creds = flow.run_local_server(port=0)

        TOKEN_FILE.parent.mkdir(parents=True, exist_ok=True)
        TOKEN_FILE.write_text(creds.to_json())

    print(f"✅ Drive token saved to {TOKEN_FILE}")
    print("For deployments, put the file contents into DRIVE_TOKEN_JSON.")


if __name__ == "__main__":
    main()
