import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from .errors import LogoProbeError
from .settings import LOGO_API_BASE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogoResult:
    found: bool
    url: Optional[str] = None
    error: Optional[str] = None


def logo_url_for_domain(domain: str, base_url: str = LOGO_API_BASE) -> str:
    return f"{base_url.rstrip('/')}/domain:{domain}"


class LogoResolver:
    """
    Confirms that the logo service has an image for a domain.

    This is an existence probe only: a HEAD request where exactly HTTP 200
    counts as found. Every other status, timeout or transport error becomes
    a not-found result carrying the error text; nothing is raised and
    nothing is retried. Downloading the image is PaletteResolver's job.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        base_url: str = LOGO_API_BASE,
        timeout: float = 5.0,
    ) -> None:
        self.client = client
        self.base_url = base_url
        self.timeout = timeout

    def resolve(self, domain: str) -> LogoResult:
        url = logo_url_for_domain(domain, self.base_url)
        logger.info("Probing logo for %s at %s", domain, url)
        try:
            self._probe(url)
        except LogoProbeError as exc:
            logger.warning("Logo probe failed for %s: %s", domain, exc)
            return LogoResult(found=False, error=str(exc))

        logger.info("Logo found for %s", domain)
        return LogoResult(found=True, url=url)

    def _probe(self, url: str) -> None:
        try:
            if self.client is not None:
                response = self.client.head(url, timeout=self.timeout)
            else:
                with httpx.Client() as client:
                    response = client.head(url, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            raise LogoProbeError(f"Timed out after {self.timeout}s: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LogoProbeError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code != 200:
            raise LogoProbeError(f"Unexpected status code: {response.status_code}")


def sanitize_filename(company_name: str) -> str:
    """
    Make a company name safe for an attachment filename.

    Drops everything except ASCII letters, digits, whitespace and hyphens,
    turns whitespace runs into single hyphens and collapses repeats,
    e.g. "Acme & Co." -> "Acme-Co".
    """
    slug = re.sub(r"[^a-zA-Z0-9\s-]", "", company_name.strip())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def attachment_filename(company_name: str) -> str:
    return f"{sanitize_filename(company_name) or 'Company'}-Gift-Guide.pdf"
