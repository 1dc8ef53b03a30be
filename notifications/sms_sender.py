"""SMS delivery through the Twilio REST API."""
import os
import logging

from utils.http_client import HTTPClient, APIError

logger = logging.getLogger("microgrid.notifications.sms_sender")

TWILIO_BASE = "https://api.twilio.com/2010-04-01"
MAX_SMS_CHARS = 320


def render_sms(alert):
    text = (f"[{alert.severity.value.upper()}] {alert.title}: {alert.description} "
            f"- {alert.location or 'System'}")
    return text[:MAX_SMS_CHARS]


class SMSSender:
    """
    Sends texts with Twilio's Messages resource.

    Credentials come from TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN; the sender
    number from TWILIO_FROM_NUMBER or ``config.sms.from_number``.
    """

    def __init__(self, config: dict, http=None):
        sms_config = config.get("sms", {})
        self.account_sid = os.environ.get("TWILIO_ACCOUNT_SID", sms_config.get("account_sid", ""))
        self.auth_token = os.environ.get("TWILIO_AUTH_TOKEN", sms_config.get("auth_token", ""))
        self.from_number = os.environ.get("TWILIO_FROM_NUMBER", sms_config.get("from_number", ""))
        self.timeout = sms_config.get("timeout", 10)
        self._http = http

    def is_configured(self) -> bool:
        return all([self.account_sid, self.auth_token, self.from_number])

    @property
    def http(self):
        if self._http is None:
            self._http = HTTPClient(
                f"{TWILIO_BASE}/Accounts/{self.account_sid}",
                timeout=self.timeout,
                max_retries=1,
                auth=(self.account_sid, self.auth_token),
                source="twilio",
            )
        return self._http

    def send_alert(self, alert, to_number: str) -> bool:
        if not self.is_configured():
            return False
        try:
            self.http.post("Messages.json", data={
                "To": to_number,
                "From": self.from_number,
                "Body": render_sms(alert),
            })
            logger.info(f"SMS sent to {to_number} for alert {alert.id}")
            return True
        except APIError as e:
            logger.error(f"SMS rejected by gateway for {to_number}: HTTP {e.status_code}")
            return False
        except Exception as e:
            logger.error(f"SMS send failed to {to_number}: {e}")
            return False
