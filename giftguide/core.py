import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from .assets import LogoResolver, attachment_filename
from .errors import RenderError, ValidationError
from .messaging import Attachment, Dispatcher, ResendDispatcher
from .palette import PaletteResolver
from .render import Renderer, build_renderer
from .settings import PLACEHOLDER_LOGO_URL, Settings, load_settings
from .template import ContactBlock, compose_document, render_email_body
from .validation import IdentityRequest, validate_request

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    VALIDATING = "validating"
    RESOLVING_LOGO = "resolving_logo"
    RESOLVING_PALETTE = "resolving_palette"
    COMPOSING = "composing"
    RENDERING = "rendering"
    DELIVERING = "delivering"
    DONE = "done"
    FAILED = "failed"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationOutcome:
    """
    Result of one pipeline run.

    Document production and delivery are reported separately: `success`
    says whether the PDF was produced, `delivery` says what happened to the
    email. Optional fields are present only when:
    - html_preview, document: success is True
    - delivery_id: delivery is SENT
    - delivery_error: delivery is FAILED
    - error, failed_stage: success is False
    - stack: success is False and the pipeline runs in debug mode
    """

    success: bool
    message: str
    company_name: Optional[str] = None
    recipient_email: Optional[str] = None
    html_preview: Optional[str] = None
    document: Optional[bytes] = None
    delivery: Optional[DeliveryStatus] = None
    delivery_id: Optional[str] = None
    delivery_error: Optional[str] = None
    error: Optional[str] = None
    failed_stage: Optional[Stage] = None
    stack: Optional[str] = None

    @property
    def stage(self) -> Stage:
        return Stage.DONE if self.success else Stage.FAILED

    def to_payload(self) -> Dict[str, Any]:
        if not self.success:
            payload: Dict[str, Any] = {"success": False, "error": self.error or self.message}
            if self.stack:
                payload["stack"] = self.stack
            return payload

        payload = {
            "success": True,
            "message": self.message,
            "companyName": self.company_name,
            "recipientEmail": self.recipient_email,
            "delivery": self.delivery.value if self.delivery else None,
        }
        if self.html_preview is not None:
            payload["htmlPreview"] = self.html_preview
        return payload


class GiftGuidePipeline:
    """
    Runs one gift guide request end to end:
    - validate the request (fatal on failure)
    - probe the logo service (placeholder logo on failure)
    - derive the brand palette (default palette on failure)
    - compose the HTML document
    - render it to PDF (fatal on failure)
    - email it if a dispatcher is configured (failure only degrades the message)

    Stages run strictly in order; the instance holds only collaborators,
    so one pipeline can serve concurrent requests.
    """

    def __init__(
        self,
        logo_resolver: LogoResolver,
        palette_resolver: PaletteResolver,
        renderer: Renderer,
        dispatcher: Optional[Dispatcher] = None,
        debug: bool = False,
    ) -> None:
        self.logo_resolver = logo_resolver
        self.palette_resolver = palette_resolver
        self.renderer = renderer
        self.dispatcher = dispatcher
        self.debug = debug

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
    ) -> "GiftGuidePipeline":
        settings = settings or load_settings()
        dispatcher = None
        if settings.email_configured:
            dispatcher = ResendDispatcher(
                api_key=settings.resend_api_key,
                from_email=settings.from_email,
                client=client,
                timeout=settings.email_timeout,
            )
        return cls(
            logo_resolver=LogoResolver(
                client=client,
                base_url=settings.logo_api_base,
                timeout=settings.probe_timeout,
            ),
            palette_resolver=PaletteResolver(client=client, timeout=settings.download_timeout),
            renderer=build_renderer(settings),
            dispatcher=dispatcher,
            debug=settings.debug,
        )

    def run(self, raw: Any) -> GenerationOutcome:
        logger.info("Stage %s", Stage.VALIDATING.value)
        try:
            request = validate_request(raw)
        except ValidationError as exc:
            logger.info("Validation failed: %s", exc)
            return self._failure(Stage.VALIDATING, exc)

        return self.generate(request)

    def generate(self, request: IdentityRequest) -> GenerationOutcome:
        logger.info(
            "Generating gift guide for %s (%s) -> %s",
            request.company_name,
            request.domain,
            request.recipient_email,
        )

        logger.info("Stage %s", Stage.RESOLVING_LOGO.value)
        logo = self.logo_resolver.resolve(request.domain)
        if not logo.found:
            logger.warning("Logo fetch failed, using placeholder: %s", logo.error)

        logger.info("Stage %s", Stage.RESOLVING_PALETTE.value)
        palette = self.palette_resolver.resolve(logo.url if logo.found else None)

        logger.info("Stage %s", Stage.COMPOSING.value)
        document = compose_document(
            company_name=request.company_name,
            logo_url=logo.url if logo.found and logo.url else PLACEHOLDER_LOGO_URL,
            palette=palette,
            contact=ContactBlock(
                name=request.contact_name,
                email=request.contact_email,
                phone=request.contact_phone,
            ),
        )
        logger.info("HTML template generated (%d characters)", len(document.html))

        logger.info("Stage %s", Stage.RENDERING.value)
        try:
            pdf = self.renderer.render(document.html)
        except Exception as exc:
            logger.exception("Rendering failed")
            error = exc if isinstance(exc, RenderError) else RenderError(str(exc) or exc.__class__.__name__)
            return self._failure(Stage.RENDERING, error, exc)

        return self._deliver(request, document.html, pdf)

    def _deliver(self, request: IdentityRequest, html: str, pdf: bytes) -> GenerationOutcome:
        company = request.company_name

        if self.dispatcher is None:
            logger.warning("Email delivery not configured, skipping email send")
            return GenerationOutcome(
                success=True,
                message=(
                    f"Gift guide PDF generated for {company}. "
                    "Email not sent (email delivery not configured)."
                ),
                company_name=company,
                recipient_email=request.recipient_email,
                html_preview=html,
                document=pdf,
                delivery=DeliveryStatus.SKIPPED,
            )

        logger.info("Stage %s", Stage.DELIVERING.value)
        try:
            delivery_id = self.dispatcher.send(
                to=request.recipient_email,
                subject=f"Your Custom Gift Guide - {company}",
                html_body=render_email_body(company, request.contact_name),
                attachment=Attachment(filename=attachment_filename(company), content=pdf),
            )
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__
            logger.error("Email sending failed: %s", reason)
            return GenerationOutcome(
                success=True,
                message=f"Gift guide PDF generated for {company}. Email failed: {reason}",
                company_name=company,
                recipient_email=request.recipient_email,
                html_preview=html,
                document=pdf,
                delivery=DeliveryStatus.FAILED,
                delivery_error=reason,
            )

        logger.info("Request completed. Email sent: %s", delivery_id)
        return GenerationOutcome(
            success=True,
            message=f"Gift guide generated and emailed successfully to {request.recipient_email}",
            company_name=company,
            recipient_email=request.recipient_email,
            html_preview=html,
            document=pdf,
            delivery=DeliveryStatus.SENT,
            delivery_id=delivery_id,
        )

    def _failure(
        self,
        stage: Stage,
        error: Exception,
        cause: Optional[BaseException] = None,
    ) -> GenerationOutcome:
        stack = None
        if self.debug:
            source = cause or error
            stack = "".join(traceback.format_exception(type(source), source, source.__traceback__))
        return GenerationOutcome(
            success=False,
            message=str(error),
            error=str(error),
            failed_stage=stage,
            stack=stack,
        )
