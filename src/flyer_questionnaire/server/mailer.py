"""Email relay: turns a submission payload into one Resend API call."""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request

from flyer_questionnaire.core.errors import MailerConfigError, MailerProviderError
from flyer_questionnaire.protocol.messages import SubmissionPayload

from .config import Settings
from .email_template import render_application_html

logger = logging.getLogger(__name__)


def _call_resend_sync(*, base_url: str, api_key: str, timeout_s: float, body: dict) -> str:
    url = base_url.rstrip("/") + "/emails"
    data = json.dumps(body).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=data,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=timeout_s) as resp:
        return resp.read().decode("utf-8")


class ResendMailer:
    def __init__(
        self,
        *,
        api_key: str | None,
        sender: str,
        recipients: list[str],
        title: str,
        base_url: str = "https://api.resend.com",
        timeout_s: float = 20.0,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.recipients = list(recipients)
        self.title = title
        self.base_url = base_url
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendMailer":
        return cls(
            api_key=settings.resend_api_key,
            sender=settings.mail_from,
            recipients=settings.mail_to,
            title=settings.application_title,
            base_url=settings.resend_base_url,
            timeout_s=settings.resend_timeout_s,
        )

    def build_message(self, payload: SubmissionPayload) -> dict:
        return {
            "from": self.sender,
            "to": self.recipients,
            "subject": payload.subject or f"{self.title} - {payload.contact.name or 'Unknown'}",
            "html": render_application_html(payload, title=self.title),
        }

    def send_application(self, payload: SubmissionPayload) -> None:
        """
        Blocking send. Raises `MailerConfigError` when no API key is configured
        and `MailerProviderError` when Resend is unreachable or rejects the email.
        """
        if not self.api_key:
            raise MailerConfigError("RESEND_API_KEY not set")
        message = self.build_message(payload)
        try:
            _call_resend_sync(
                base_url=self.base_url,
                api_key=self.api_key,
                timeout_s=self.timeout_s,
                body=message,
            )
        except urllib.error.HTTPError as e:
            details = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
            raise MailerProviderError("Resend error", status=e.code, details=details) from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise MailerProviderError("Resend unreachable", details=str(e)) from e
        except (http.client.HTTPException, ValueError) as e:
            raise MailerProviderError("Resend error", details=repr(e)) from e
        logger.info("application email sent: %s", message["subject"])
