"""
SMTP email sender for microgrid alerts.

Handles:
  - SMTP connection with TLS
  - MIME multipart construction (HTML + plaintext fallback)
  - Credential management (env vars > config file)
"""
import os
import ssl
import smtplib
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate

from markupsafe import escape

logger = logging.getLogger("microgrid.notifications.email_sender")

SEVERITY_COLORS = {"critical": "#DC3545", "warning": "#FFC107", "info": "#00E0A1"}


def render_alert_email(alert, dashboard_url="http://localhost:5000"):
    """Subject, plaintext body, and HTML body for one alert.

    Operator-supplied text (title, description, location) is escaped in the HTML body.
    """
    severity = alert.severity.value
    color = SEVERITY_COLORS.get(severity, "#6C757D")
    location = alert.location or "System-wide"
    when = alert.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")

    subject = f"[{severity.upper()}] {alert.title}"
    text = (
        "Energy Management System Alert\n\n"
        f"{alert.title}\n\n"
        f"Description: {alert.description}\n"
        f"Severity: {severity.upper()}\n"
        f"Type: {alert.type.value}\n"
        f"Location: {location}\n"
        f"Time: {when}\n\n"
        "Please check the dashboard for more details and take appropriate action."
    )
    title, description, place = escape(alert.title), escape(alert.description), escape(location)
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <div style="background: {color}; color: white; padding: 20px; text-align: center;">
            <h1 style="margin: 0; font-size: 24px;">{title}</h1>
        </div>
        <div style="padding: 20px; background: #f8f9fa;">
            <p><strong>Description:</strong> {description}</p>
            <p><strong>Severity:</strong>
               <span style="color: {color}; font-weight: bold;">{severity.upper()}</span></p>
            <p><strong>Type:</strong> {alert.type.value}</p>
            <p><strong>Location:</strong> {place}</p>
            <p><strong>Time:</strong> {when}</p>
            <div style="margin-top: 20px; text-align: center;">
                <a href="{escape(dashboard_url)}"
                   style="background: #00E0A1; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 4px;">View Dashboard</a>
            </div>
        </div>
    </div>
    """
    return subject, text, html


class EmailSender:
    """
    SMTP email sender.

    Credential resolution order:
      1. Environment variables: MICROGRID_SMTP_USER, MICROGRID_SMTP_PASS
      2. Config file: config.email.smtp_username, config.email.smtp_password
    """

    def __init__(self, config: dict):
        email_config = config.get("email", {})
        self.smtp_host = email_config.get("smtp_host", "localhost")
        self.smtp_port = email_config.get("smtp_port", 587)
        self.use_tls = email_config.get("use_tls", True)
        self.from_address = email_config.get("from_address", "")
        self.from_name = email_config.get("from_name", "Microgrid Monitor")
        self.dashboard_url = email_config.get("dashboard_url", "http://localhost:5000")

        self.username = os.environ.get(
            "MICROGRID_SMTP_USER",
            email_config.get("smtp_username", ""),
        )
        self.password = os.environ.get(
            "MICROGRID_SMTP_PASS",
            email_config.get("smtp_password", ""),
        )

    def is_configured(self) -> bool:
        """Check if all required SMTP fields are present."""
        return all([self.smtp_host, self.from_address, self.username, self.password])

    def send_alert(self, alert, to_address: str) -> bool:
        """Send a single alert email to one recipient."""
        if not self.is_configured():
            return False

        subject, text, html = render_alert_email(alert, self.dashboard_url)
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.from_name, self.from_address))
        msg["To"] = to_address
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        return self._send(msg)

    def _send(self, msg: MIMEMultipart) -> bool:
        """Internal: send a constructed MIME message via SMTP."""
        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.ehlo()
                if self.use_tls:
                    server.starttls(context=context)
                    server.ehlo()
                server.login(self.username, self.password)
                server.send_message(msg)
            logger.info(f"Email sent to {msg['To']}: {msg['Subject']}")
            return True
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP authentication failed. Check username/password.")
            return False
        except smtplib.SMTPRecipientsRefused:
            logger.error(f"Recipient refused: {msg['To']}")
            return False
        except Exception as e:
            logger.error(f"Email send failed: {e}")
            return False
