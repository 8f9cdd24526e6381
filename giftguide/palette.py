import logging
from typing import Optional, Tuple

import httpx

from .colors import DEFAULT_PALETTE, BrandPalette, select_palette
from .errors import PaletteExtractionError
from .sampler import ColorSampler

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/webp"


class PaletteResolver:
    """
    Downloads a confirmed logo and derives the brand palette from it.

    This is the single fallback point for the colour pipeline: a missing
    logo, a failed download, an undecodable image or a sampler error all
    yield DEFAULT_PALETTE. `resolve` never raises.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        sampler: Optional[ColorSampler] = None,
        timeout: float = 10.0,
    ) -> None:
        self.client = client
        self.sampler = sampler or ColorSampler()
        self.timeout = timeout

    def resolve(self, logo_url: Optional[str]) -> BrandPalette:
        if not logo_url:
            logger.info("No logo available, using default palette")
            return DEFAULT_PALETTE

        try:
            palette = self._extract(logo_url)
        except PaletteExtractionError as exc:
            logger.warning("Color extraction failed for %s: %s; using default palette", logo_url, exc)
            return DEFAULT_PALETTE

        logger.info(
            "Extracted brand colors: primary=%s secondary=%s accent=%s",
            palette.primary,
            palette.secondary,
            palette.accent,
        )
        return palette

    def _extract(self, logo_url: str) -> BrandPalette:
        data, content_type = self._download(logo_url)
        try:
            samples = self.sampler.sample(data, content_type)
        except PaletteExtractionError:
            raise
        except Exception as exc:
            raise PaletteExtractionError(f"Color sampling failed: {exc}") from exc
        logger.info("Extracted %d colors from logo", len(samples))
        return select_palette(samples)

    def _download(self, logo_url: str) -> Tuple[bytes, str]:
        logger.info("Downloading logo from %s", logo_url)
        try:
            if self.client is not None:
                response = self.client.get(logo_url, timeout=self.timeout, follow_redirects=True)
            else:
                with httpx.Client() as client:
                    response = client.get(logo_url, timeout=self.timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PaletteExtractionError(f"Logo download failed: {exc}") from exc

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        return response.content, content_type
