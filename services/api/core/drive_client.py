# services/api/core/drive_client.py
from __future__ import annotations
import logging
import json
from io import BytesIO
from typing import Optional
from pathlib import Path

from google.oauth2.credentials import Credentials as UserCredentials
from google.auth.transport.requests import Request
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from settings import get_settings

logger = logging.getLogger(__name__)

_drive_service = None

# "drive.file" is enough: we only touch files this app created
SCOPES = ["https://www.googleapis.com/auth/drive.file"]

# Paths relative to services/api/
BASE_DIR = Path(__file__).resolve().parent.parent
CREDS_DIR = BASE_DIR / "creds"
TOKEN_FILE = CREDS_DIR / "drive_token.json"


class DriveUploadError(RuntimeError):
    pass


def _get_drive_credentials() -> UserCredentials:
    """
    Load user OAuth credentials.

    Priority:
    1) DRIVE_TOKEN_JSON setting (deployments)
    2) local creds/drive_token.json written by drive_oauth_init.py (dev)
    """
    token_json = get_settings().drive_token_json

    if token_json:
        info = json.loads(token_json)
        creds = UserCredentials.from_authorized_user_info(info, SCOPES)
    else:
        if not TOKEN_FILE.exists():
            msg = (
                f"Drive token not found in settings or at {TOKEN_FILE}. "
                "Either set DRIVE_TOKEN_JSON or run drive_oauth_init.py once."
            )
            logger.error(msg)
            raise DriveUploadError(msg)
        creds = UserCredentials.from_authorized_user_file(str(TOKEN_FILE), SCOPES)

    if creds.expired and creds.refresh_token:
        logger.info("Refreshing Google Drive OAuth token...")
        creds.refresh(Request())
        if not token_json:
            CREDS_DIR.mkdir(parents=True, exist_ok=True)
            TOKEN_FILE.write_text(creds.to_json())
            logger.info("Google Drive OAuth token refreshed and saved.")

    return creds


def get_drive_service():
    """Lazily build and cache a Drive v3 client."""
    global _drive_service
    if _drive_service is None:
        creds = _get_drive_credentials()
        _drive_service = build(
            "drive",
            "v3",
            credentials=creds,
            cache_discovery=False,
        )
        logger.info("Initialized Google Drive client using OAuth user credentials.")
    return _drive_service


def _safe_file_name(value: str, fallback: str = "document") -> str:
    v = (value or "").strip().replace("/", "_").replace("\\", "_")
    return v[:200] or fallback


def view_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view?usp=drivesdk"


def upload_file_to_drive(
    *,
    data: bytes,
    file_name: str,
    mime_type: str,
    folder_id: Optional[str] = None,
) -> str:
    """
    Upload one document into `folder_id` (or My Drive root) and make it
    readable by anyone with the link.

    Returns the file's view URL. Raises DriveUploadError on failure.
    """
    try:
        service = get_drive_service()

        media = MediaIoBaseUpload(
            BytesIO(data),
            mimetype=mime_type or "application/octet-stream",
            resumable=False,
        )
        metadata = {"name": _safe_file_name(file_name)}
        if folder_id:
            metadata["parents"] = [folder_id]

        created = service.files().create(
            body=metadata,
            media_body=media,
            fields="id",
        ).execute()
        file_id = created["id"]
    except DriveUploadError:
        raise
    except Exception as e:
        logger.exception("Failed to upload %s to Drive: %s", file_name, e)
        raise DriveUploadError(f"File upload failed: {e}") from e

    # Shared links must open for recipients outside the domain
    try:
        service.permissions().create(
            fileId=file_id,
            body={"role": "reader", "type": "anyone"},
            fields="id",
        ).execute()
    except Exception as e:
        logger.warning("Failed to set public permission for file %s: %s", file_id, e)

    logger.info("Uploaded %s to Drive file_id=%s", file_name, file_id)
    return view_url(file_id)
