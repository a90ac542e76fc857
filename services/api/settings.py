# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
import base64
from typing import Dict, List, Optional
from pathlib import Path


class Settings(BaseSettings):
    # Storage settings
    # Default to the Apps Script endpoint; STORAGE_BACKEND=sheets talks to Google Sheets directly
    storage_backend: str = "appscript"

    # ===== Apps Script endpoint =====
    # Reads (fetch / getNextSerials) go to APPSCRIPT_URL.
    # Writes go to APPSCRIPT_WRITE_URL if set, otherwise to APPSCRIPT_URL.
    appscript_url: str = ""
    appscript_write_url: str = ""
    drive_folder_id: str = ""
    # OAuth user token for direct Drive uploads (sheets backend); see drive_oauth_init.py
    drive_token_json: str = ""
    request_timeout_seconds: float = 30.0

    # Sheet (tab) names
    documents_sheet: str = "Documents"
    renewal_sheet: str = "Updated Renewal"
    approval_sheet: str = "Approval Documents"

    # ===== Serial numbers =====
    # "server" -> ask the endpoint for getNextSerials
    # "scan"   -> fetch all sheets and continue from the max issued serial
    serial_strategy: str = "server"
    # JSON object in .env, e.g. EXTRA_CATEGORY_PREFIXES={"Trust": "TN", "Partnership": "PS"}
    extra_category_prefixes: Dict[str, str] = Field(default_factory=dict)

    # New uploads land in the approval sheet first
    require_approval: bool = True

    # ===== Display =====
    display_timezone: str = "Asia/Kolkata"
    # Legacy behaviour: show "now" instead of a stored 00:00:00 time
    display_midnight_as_now: bool = False

    # ===== Login =====
    login_users: Dict[str, str] = Field(default_factory=lambda: {"admin": "admin123"})
    admin_users: List[str] = Field(default_factory=lambda: ["admin"])
    session_ttl_seconds: int = 12 * 60 * 60

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    # Email settings (used by the direct sheets backend for shareViaEmail)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = ""
    smtp_from_name: str = "Document Vault"

    # Comma-separated list of emails that should be BCC'd on every share mail
    smtp_always_bcc: Optional[str] = Field(
        default=None,
        description="Comma-separated emails that will be BCC'ed on every shared-documents mail",
    )

    # ===== Google (direct sheets backend) =====
    google_sa_json: str = ""
    google_sa_json_base64: str = ""
    sheets_spreadsheet_id: str = ""

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def resolved_google_sa_json(self) -> str:
        """
        Return the path to the service account JSON.
        If GOOGLE_SA_JSON_BASE64 is set, decode it to a temp file.
        Otherwise return GOOGLE_SA_JSON path.
        """
        if self.google_sa_json_base64:
            import tempfile

            decoded = base64.b64decode(self.google_sa_json_base64)
            temp_file = tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.json')
            temp_file.write(decoded.decode('utf-8'))
            temp_file.close()
            return temp_file.name

        return self.google_sa_json

    def write_url(self) -> str:
        """Endpoint used for insert/upload/approve/... actions."""
        return (self.appscript_write_url or self.appscript_url).strip()

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def get_bcc_list(self) -> List[str]:
        if not self.smtp_always_bcc:
            return []
        return [e.strip() for e in self.smtp_always_bcc.split(",") if e.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
