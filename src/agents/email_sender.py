"""
email_sender.py — Outbound proposal email

Builds the customer-facing proposal email (plain + HTML + PDF attachment) and
hands it to one of two providers:

  MailjetSender — Mailjet Send API v3.1 over HTTPS (default)
  SmtpSender    — any STARTTLS relay (Gmail app password, Postmark SMTP, ...)

Either sender returns a DeliveryResult on success and raises MailDeliveryError
otherwise. Neither retries.
"""

import base64
import html
import logging
import smtplib
from dataclasses import dataclass, field
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

import requests

from src.core.models import DeliveryResult, Quote

log = logging.getLogger("continuate.email")

MAILJET_SEND_URL = "https://api.mailjet.com/v3.1/send"


class MailDeliveryError(Exception):
    """Provider rejected the message or could not be reached."""


@dataclass(frozen=True)
class OutgoingEmail:
    from_email: str
    from_name: str
    to_email: str
    to_name: str
    subject: str
    text_body: str
    html_body: str
    attachment_name: str
    attachment: bytes = field(repr=False)
    attachment_type: str = "application/pdf"


# ─── Templates ───────────────────────────────────────────────────────────────

def attachment_filename(brand: str, public_id: str) -> str:
    return f"{brand}-Quote-{public_id}.pdf"


def build_quote_email(quote: Quote, accept_url: str, pdf: bytes,
                      from_email: str, from_name: str, brand: str) -> OutgoingEmail:
    """Proposal email addressed to the quote's contact."""
    name = quote.greeting_name
    subject = f"Your {brand} Proposal - {quote.name}"
    text_body = (
        f"Hi {name},\n\n"
        f"Your proposal is ready: {accept_url}\n\n"
        f"Best,\n{brand}"
    )
    safe_name = html.escape(name or "")
    safe_url = html.escape(accept_url or "", quote=True)
    html_body = (
        f"<p>Hi {safe_name},</p>"
        f"<p>Your proposal is ready.</p>"
        f'<p><a href="{safe_url}">Open the live proposal</a></p>'
        f"<p>The PDF is attached.</p>"
        f"<p>Best,<br/>{html.escape(brand)}</p>"
    )
    return OutgoingEmail(
        from_email=from_email,
        from_name=from_name,
        to_email=quote.contact_email,
        to_name=name,
        subject=subject,
        text_body=text_body,
        html_body=html_body,
        attachment_name=attachment_filename(brand, quote.public_id),
        attachment=pdf,
    )


# ─── Providers ───────────────────────────────────────────────────────────────

class MailjetSender:
    provider = "mailjet"

    def __init__(self, api_key: str, api_secret: str, timeout: float = 30.0):
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout

    def payload(self, msg: OutgoingEmail) -> dict:
        return {
            "Messages": [
                {
                    "From": {"Email": msg.from_email, "Name": msg.from_name},
                    "To": [{"Email": msg.to_email, "Name": msg.to_name}],
                    "Subject": msg.subject,
                    "TextPart": msg.text_body,
                    "HTMLPart": msg.html_body,
                    "Attachments": [
                        {
                            "ContentType": msg.attachment_type,
                            "Filename": msg.attachment_name,
                            "Base64Content": base64.b64encode(msg.attachment).decode("ascii"),
                        },
                    ],
                },
            ],
        }

    def send(self, msg: OutgoingEmail) -> DeliveryResult:
        try:
            resp = requests.post(
                MAILJET_SEND_URL,
                auth=(self.api_key, self.api_secret),
                json=self.payload(msg),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise MailDeliveryError(f"Mailjet unreachable: {e}") from e

        if resp.status_code >= 300:
            raise MailDeliveryError(f"Mailjet HTTP {resp.status_code}: {resp.text[:300]}")
        try:
            messages = (resp.json() or {}).get("Messages") or []
        except ValueError:
            messages = []
        first = messages[0] if messages else {}
        if first.get("Status") != "success":
            raise MailDeliveryError(f"Mailjet status {first.get('Status')!r}: {first.get('Errors')}")

        to = (first.get("To") or [{}])[0]
        message_id = to.get("MessageUUID") or to.get("MessageID")
        log.info("Mailjet accepted message to %s (%s)", msg.to_email, message_id)
        return DeliveryResult(provider=self.provider, recipient=msg.to_email,
                              message_id=str(message_id) if message_id else None)


class SmtpSender:
    provider = "smtp"

    def __init__(self, host: str, port: int, username: str, password: str,
                 timeout: float = 30.0):
        self.smtp_host = host
        self.smtp_port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    def build_message(self, msg: OutgoingEmail) -> MIMEMultipart:
        mime = MIMEMultipart("mixed")
        mime["From"] = formataddr((msg.from_name, msg.from_email))
        mime["To"] = formataddr((msg.to_name or "", msg.to_email))
        mime["Subject"] = msg.subject
        mime["Message-ID"] = make_msgid()

        alt = MIMEMultipart("alternative")
        alt.attach(MIMEText(msg.text_body, "plain"))
        alt.attach(MIMEText(msg.html_body, "html"))
        mime.attach(alt)

        maintype, subtype = msg.attachment_type.split("/", 1)
        part = MIMEBase(maintype, subtype)
        part.set_payload(msg.attachment)
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", "attachment", filename=msg.attachment_name)
        mime.attach(part)
        return mime

    def send(self, msg: OutgoingEmail) -> DeliveryResult:
        mime = self.build_message(msg)
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"SMTP send failed: {e}") from e
        log.info("SMTP sent message to %s via %s", msg.to_email, self.smtp_host)
        return DeliveryResult(provider=self.provider, recipient=msg.to_email,
                              message_id=mime["Message-ID"])


def make_sender(settings):
    """Sender for the configured provider."""
    if settings.mail_provider == "smtp":
        return SmtpSender(settings.smtp_host, settings.smtp_port,
                          settings.smtp_user, settings.smtp_password,
                          timeout=max(settings.http_timeout, 30.0))
    return MailjetSender(settings.mailjet_api_key, settings.mailjet_api_secret,
                         timeout=max(settings.http_timeout, 30.0))
