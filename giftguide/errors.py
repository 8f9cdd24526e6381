"""
Error taxonomy for the gift guide pipeline.

Only ValidationError and RenderError halt a run. LogoProbeError,
PaletteExtractionError and DeliveryError are absorbed into fallbacks by the
component that raises them or by the orchestrator. CompositionError marks a
broken template and is never converted into a user-facing outcome.
"""

from typing import Optional


class GiftGuideError(Exception):
    """Base class for every error raised by the pipeline."""


class ValidationError(GiftGuideError):
    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class LogoProbeError(GiftGuideError):
    pass


class PaletteExtractionError(GiftGuideError):
    pass


class CompositionError(GiftGuideError):
    pass


class RenderError(GiftGuideError):
    pass


class DeliveryError(GiftGuideError):
    pass
