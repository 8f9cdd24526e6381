"""
HTTP transport for the gift guide pipeline.

Run with:
    uvicorn --factory giftguide.api:create_app
"""

import logging
import traceback
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .core import GiftGuidePipeline, Stage
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

GUIDE_PATH = "/api/generate-guide"


def create_app(
    pipeline: Optional[GiftGuidePipeline] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    if pipeline is None:
        load_dotenv()
        settings = settings or load_settings()
        pipeline = GiftGuidePipeline.from_settings(settings)
    debug = settings.debug if settings is not None else pipeline.debug

    app = FastAPI(
        title="Gift Guide API",
        description="Generates branded gift guide PDFs and emails them",
        version="0.1.0",
        docs_url="/docs" if debug else None,
        redoc_url=None,
    )

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    @app.post(GUIDE_PATH)
    async def generate_guide(request: Request):
        logger.info("Received generate-guide request")
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse({"success": False, "error": "Invalid JSON in request body"}, status_code=400)

        try:
            # The pipeline blocks on network and rendering; keep it off the event loop.
            outcome = await run_in_threadpool(pipeline.run, body)
        except Exception as exc:
            logger.exception("Error processing request")
            payload = {"success": False, "error": str(exc) or "Unknown error occurred"}
            if debug:
                payload["stack"] = traceback.format_exc()
            return JSONResponse(payload, status_code=500)

        if outcome.success:
            status = 200
        elif outcome.failed_stage == Stage.VALIDATING:
            status = 400
        else:
            status = 500
        return JSONResponse(outcome.to_payload(), status_code=status)

    @app.api_route(GUIDE_PATH, methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def method_not_allowed():
        return JSONResponse(
            {"success": False, "error": "Method not allowed. Use POST request."},
            status_code=405,
        )

    return app
