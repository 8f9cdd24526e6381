import base64
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from .errors import DeliveryError
from .settings import DEFAULT_FROM_EMAIL

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes


class Dispatcher(Protocol):
    def send(self, to: str, subject: str, html_body: str, attachment: Attachment) -> str:
        ...


class ResendDispatcher:
    """
    Email delivery through the Resend REST API.

    `send` returns the provider's message id. Transport failures, non-2xx
    responses and error payloads all raise DeliveryError carrying the
    provider's message, so the caller can report it without guessing.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str = DEFAULT_FROM_EMAIL,
        client: Optional[httpx.Client] = None,
        timeout: float = 15.0,
        api_url: str = RESEND_API_URL,
    ) -> None:
        if not api_key:
            raise ValueError("ResendDispatcher requires an API key")
        self.api_key = api_key
        self.from_email = from_email
        self.client = client
        self.timeout = timeout
        self.api_url = api_url

    def send(self, to: str, subject: str, html_body: str, attachment: Attachment) -> str:
        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html_body,
            "attachments": [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                }
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.info("Sending email to %s", to)
        try:
            if self.client is not None:
                response = self.client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client() as client:
                    response = client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Email transport error: {exc}") from exc

        data = _json_or_empty(response)
        if response.is_error:
            message = data.get("message") or response.reason_phrase or "unknown error"
            raise DeliveryError(f"{message} (HTTP {response.status_code})")

        message_id = data.get("id")
        if not message_id:
            raise DeliveryError("Email provider returned no message id")

        logger.info("Email sent successfully. ID: %s", message_id)
        return str(message_id)


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
