import io
from typing import Callable, List, Optional

import httpx
import pytest
from PIL import Image

from giftguide.messaging import Attachment


FAKE_PDF = b"%PDF-1.4\n% fake gift guide\n"


class FakeRenderer:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[str] = []

    def render(self, html: str) -> bytes:
        self.calls.append(html)
        if self.error is not None:
            raise self.error
        return FAKE_PDF


class FakeDispatcher:
    def __init__(self, error: Optional[Exception] = None, delivery_id: str = "email_123") -> None:
        self.error = error
        self.delivery_id = delivery_id
        self.sent: List[dict] = []

    def send(self, to: str, subject: str, html_body: str, attachment: Attachment) -> str:
        self.sent.append(
            {"to": to, "subject": subject, "html_body": html_body, "attachment": attachment}
        )
        if self.error is not None:
            raise self.error
        return self.delivery_id


def png_bytes(regions, size=(100, 100), mode="RGB", background=(255, 255, 255)) -> bytes:
    """Build an image from (box, colour) regions painted over a background."""
    img = Image.new(mode, size, background)
    for box, color in regions:
        img.paste(color, box)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def valid_body():
    return {
        "companyName": "Nike",
        "domain": "nike.com",
        "recipientEmail": "test@example.com",
        "aeName": "Jane Doe",
        "aeEmail": "jane@upmerch.com",
        "aePhone": "555-0100",
    }


@pytest.fixture
def brand_logo() -> bytes:
    # 60% red, 30% blue, 10% white background.
    return png_bytes(
        [
            ((0, 0, 100, 60), (255, 0, 0)),
            ((0, 60, 100, 90), (0, 0, 255)),
        ]
    )
