# services/api/core/email_sender.py
from __future__ import annotations
import aiosmtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import List, Dict, Optional
import logging

logger = logging.getLogger(__name__)


def render_share_body(recipient_name: str, message: str, documents: List[Dict[str, str]]) -> str:
    """
    HTML body for a share mail: greeting, optional note, one link per document.
    documents: [{"serialNo": ..., "name": ..., "imageUrl": ...}]
    """
    items = []
    for d in documents:
        label = escape(f"{d.get('serialNo', '')} - {d.get('name', '')}".strip(" -"))
        url = d.get("imageUrl") or ""
        if url:
            items.append(f'<li><a href="{escape(url, quote=True)}">{label}</a></li>')
        else:
            items.append(f"<li>{label}</li>")

    note = f"<p>{escape(message)}</p>" if message else ""
    return (
        f"<p>Hello {escape(recipient_name or '')},</p>"
        f"{note}"
        "<p>The following documents have been shared with you:</p>"
        f"<ul>{''.join(items)}</ul>"
    )


async def send_documents_email(
    *,
    to_email: str,
    subject: str,
    body_html: str,
    smtp_host: str,
    smtp_port: int,
    smtp_user: str,
    smtp_password: str,
    from_email: str,
    from_name: str,
    bcc_emails: Optional[List[str]] = None,
) -> bool:
    """
    Send an HTML mail via SMTP (STARTTLS).
    Returns True on success, False on failure.
    """
    try:
        msg = MIMEMultipart()
        msg['From'] = f"{from_name} <{from_email}>"
        msg['To'] = to_email
        msg['Subject'] = subject

        # BCC is not a header; dedupe against TO
        clean_bcc: List[str] = []
        if bcc_emails:
            seen = {to_email.lower()}
            for addr in bcc_emails:
                a = (addr or "").strip()
                if not a or a.lower() in seen:
                    continue
                seen.add(a.lower())
                clean_bcc.append(a)

        msg.attach(MIMEText(body_html, 'html'))

        await aiosmtplib.send(
            msg,
            hostname=smtp_host,
            port=smtp_port,
            username=smtp_user,
            password=smtp_password,
            start_tls=True,
            recipients=[to_email] + clean_bcc,
        )

        logger.info(f"✓ Email sent to {to_email} ({len(clean_bcc)} bcc)")
        return True

    except Exception as e:
        logger.error(f"✗ Email send failed to {to_email}: {e}")
        return False
