"""Outbound email: ticket confirmations and organizer credentials.

Sending is best-effort. Every public function returns True/False and never
raises, so callers can record ``email_sent`` without guarding the call.
"""

import base64
import logging
import smtplib
from datetime import datetime
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape as html_escape
from typing import Any, Dict, Optional

from eventhub.common.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = "data:image/png;base64,"


def _deliver(message: MIMEMultipart) -> bool:
    if not settings.smtp_host or not settings.mail_sender:
        logger.warning(f"SMTP not configured; skipping email to {message['To']}")
        return False
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password or "")
            smtp.send_message(message)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Email send error to {message['To']}: {e}")
        return False


def _qr_attachment(qr_code: Optional[str]) -> Optional[MIMEImage]:
    if not qr_code or not qr_code.startswith(_DATA_URL_PREFIX):
        return None
    image = MIMEImage(base64.b64decode(qr_code[len(_DATA_URL_PREFIX):]), _subtype="png")
    image.add_header("Content-ID", "<qrcode>")
    image.add_header("Content-Disposition", "inline", filename="ticket-qr.png")
    return image


def send_ticket_email(to_email: str, participant_name: str, ticket: Dict[str, Any]) -> bool:
    """Send a registration confirmation with the ticket QR inline."""
    event_name = html_escape(str(ticket.get("event_name", "")))
    event_date = ticket.get("event_date")
    date_text = event_date.strftime("%d %b %Y") if isinstance(event_date, datetime) else "TBA"
    amount = ticket.get("amount")
    qr_image = _qr_attachment(ticket.get("qr_code"))

    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Registration Confirmed!</h2>
      <p>Dear {html_escape(participant_name)},</p>
      <p>Your registration for <strong>{event_name}</strong> has been confirmed.</p>
      <div style="background-color: #f5f5f5; padding: 20px; margin: 20px 0; border-radius: 8px;">
        <h3>Ticket Details:</h3>
        <p><strong>Ticket ID:</strong> {html_escape(str(ticket.get("ticket_id")))}</p>
        <p><strong>Event:</strong> {event_name}</p>
        <p><strong>Date:</strong> {date_text}</p>
        <p><strong>Venue:</strong> {html_escape(ticket.get("venue") or "TBA")}</p>
        {f"<p><strong>Amount Paid:</strong> &#8377;{amount}</p>" if amount else ""}
      </div>
      {'<div style="text-align: center;"><img src="cid:qrcode" alt="QR Code" style="width: 200px;"/>'
       '<p style="font-size: 12px; color: #666;">Show this QR code at the event venue</p></div>' if qr_image else ""}
      <p>See you at the event!</p>
      <p style="font-size: 12px; color: #666;">This is an automated email. Please do not reply to this message.</p>
    </div>
    """

    message = MIMEMultipart("related")
    message["Subject"] = f"Registration Confirmed - {ticket.get('event_name', '')}"
    message["From"] = settings.mail_sender or ""
    message["To"] = to_email
    message.attach(MIMEText(html_body, "html"))
    if qr_image is not None:
        message.attach(qr_image)
    return _deliver(message)


def send_organizer_credentials(to_email: Optional[str], organizer_name: str, login_email: str, password: str) -> bool:
    """Send freshly generated organizer login credentials."""
    if not to_email:
        return False

    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Welcome to the Organizer Portal!</h2>
      <p>Dear {html_escape(organizer_name)},</p>
      <p>Here are your login credentials:</p>
      <div style="background-color: #f5f5f5; padding: 20px; margin: 20px 0; border-radius: 8px;">
        <p><strong>Email:</strong> {html_escape(login_email)}</p>
        <p><strong>Temporary Password:</strong> {html_escape(password)}</p>
      </div>
      <p><strong>Important:</strong> Please change your password after your first login.</p>
      <p>Login at: {html_escape(settings.frontend_url)}/login</p>
    </div>
    """

    message = MIMEMultipart("alternative")
    message["Subject"] = "Your Organizer Account Credentials"
    message["From"] = settings.mail_sender or ""
    message["To"] = to_email
    message.attach(MIMEText(html_body, "html"))
    return _deliver(message)
