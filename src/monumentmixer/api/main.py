"""Monument Mixer — FastAPI generation proxy.

This module defines the FastAPI ``app`` instance, its routes, and the
``main()`` CLI function that launches the uvicorn server.

The API exists so that the Gemini API key stays on the server: the wizard UI
(in ``proxy`` mode) or any other client posts an operation here, the server
performs the generation call with its own key and returns the result.  No
state is kept between requests.

Endpoints
---------
========  ====================  ==========================================
Method    Path                  Purpose
========  ====================  ==========================================
GET       ``/api/config``       Version, model names and size limits
POST      ``/api/generate``     Run one generation operation
========  ====================  ==========================================

``POST /api/generate`` Operations
---------------------------------
=============================  ==========================  ==================
``type``                       Fields                      Response
=============================  ==========================  ==================
generateMonumentFromPrompt     prompt                      ``{imageUrl}``
generateMonumentFromImage      image, prompt               ``{imageUrl}``
describeScene                  image                       ``{description}``
generateScene                  prompt                      ``{imageUrl}``
placeMonument                  sceneImage, monumentImage,  ``{finalImageUrl}``
                               prompt
=============================  ==========================  ==================

Failures return ``{error}`` with a non-2xx status: 400 for invalid input,
413 for oversized bodies, 429 when the upstream quota is exhausted, 503 when
the server key is missing or rejected, and 502 for other upstream failures.

Usage
-----
CLI (installed entry point)::

    monument-mixer-api

Direct invocation::

    python -m monumentmixer.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.datastructures import Headers
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from monumentmixer import __version__
from monumentmixer.api.models import (
    DescribeSceneRequest,
    DescriptionResponse,
    ErrorResponse,
    FinalImageResponse,
    GenerateMonumentFromImageRequest,
    GenerateMonumentFromPromptRequest,
    GenerateRequest,
    GenerateResponse,
    GenerateSceneRequest,
    ImageResponse,
)
from monumentmixer.core.backends import GenerationBackend, create_backend
from monumentmixer.core.config import config
from monumentmixer.core.generation import EmptyResponse, TransportError
from monumentmixer.core.image_codec import ImageCodecError
from monumentmixer.workflows.failures import classify_failure
from monumentmixer.workflows.models import FailureKind

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: backend setup.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the server-side generation backend on startup.

    The backend reads the key from the server environment for every call;
    the key itself is never stored on ``app.state``.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.backend = create_backend(config, mode="server")
    if config.gemini_api_key is None:
        logger.warning("No server API key configured; generation requests will fail.")
    logger.info(f"Generation backend ready (image model: {config.image_model}).")

    yield


app = FastAPI(
    title="Monument Mixer API",
    description="Server-side proxy for monument generation and scene compositing.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so a browser front end served from another
# origin can call the proxy.  Restrict ``allow_origins`` in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class BodySizeLimitMiddleware:
    """Reject bodies larger than ``config.max_request_bytes`` with 413.

    A declared ``Content-Length`` over the limit is refused before the route
    runs.  Bodies without one (chunked uploads) are counted as they are read
    and refused as soon as the running total passes the limit.
    """

    def __init__(self, app) -> None:
        self.app = app

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = config.max_request_bytes
        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > limit:
            response = JSONResponse(status_code=413, content={"error": _too_large_message(limit)})
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise HTTPException(status_code=413, detail=_too_large_message(limit))
            return message

        await self.app(scope, limited_receive, send)


def _too_large_message(limit: int) -> str:
    return f"Request body is too large (limit {limit / (1024 * 1024):.0f}MB)."


app.add_middleware(BodySizeLimitMiddleware)


def get_backend(request: Request) -> GenerationBackend:
    """Return the backend created by :func:`lifespan`."""
    return request.app.state.backend


# ---------------------------------------------------------------------------
# Error handlers: every failure is ``{"error": ...}``.
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten pydantic validation errors into one readable message."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return routing and body-size errors in the same ``{error}`` shape."""
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(ImageCodecError)
async def handle_codec_error(request: Request, exc: ImageCodecError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(EmptyResponse)
async def handle_empty_response(request: Request, exc: EmptyResponse) -> JSONResponse:
    logger.warning(f"Empty model response: {exc}")
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(TransportError)
async def handle_transport_error(request: Request, exc: TransportError) -> JSONResponse:
    kind = classify_failure(exc)
    if kind is FailureKind.QUOTA_EXCEEDED:
        status, message = 429, "The API quota has been exceeded. Please try again later."
    elif kind is FailureKind.INVALID_CREDENTIAL:
        status, message = 503, "The server's API key is missing or invalid."
    else:
        status, message = 502, f"Error generating image: {exc}"
    logger.error(f"Upstream failure ({kind.value}): {exc}")
    return JSONResponse(status_code=status, content={"error": message})


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config() -> dict:
    """Return public configuration for clients.

    Returns:
        Dictionary with ``version``, ``imageModel``, ``textModel``, and
        ``maxRequestBytes``.  Credentials are never included.
    """
    return {
        "version": __version__,
        "imageModel": config.image_model,
        "textModel": config.text_model,
        "maxRequestBytes": config.max_request_bytes,
    }


ERROR_RESPONSES = {
    status: {"model": ErrorResponse, "description": description}
    for status, description in (
        (400, "Invalid request"),
        (413, "Request body too large"),
        (429, "Upstream quota exhausted"),
        (502, "Upstream generation failure"),
        (503, "Server API key missing or rejected"),
    )
}


@app.post("/api/generate", response_model=GenerateResponse, responses=ERROR_RESPONSES)
async def generate(
    req: GenerateRequest,
    backend: GenerationBackend = Depends(get_backend),
) -> GenerateResponse:
    """Run one generation operation with the server-held key.

    Args:
        req: One of the operation requests, selected by its ``type`` field.
        backend: Server-side generation backend.

    Returns:
        ``{"imageUrl": ...}``, ``{"finalImageUrl": ...}`` or
        ``{"description": ...}`` depending on the operation.  Image URLs are
        ``data:`` URLs.
    """
    logger.info(f"POST /api/generate type={req.type}")

    if isinstance(req, GenerateMonumentFromPromptRequest):
        image = await backend.generate_monument_from_prompt(req.prompt)
        return ImageResponse(image_url=image.to_data_url())

    if isinstance(req, GenerateMonumentFromImageRequest):
        image = await backend.generate_monument_from_image(req.image.to_payload(), req.prompt)
        return ImageResponse(image_url=image.to_data_url())

    if isinstance(req, DescribeSceneRequest):
        description = await backend.describe_scene(req.image.to_payload())
        return DescriptionResponse(description=description)

    if isinstance(req, GenerateSceneRequest):
        image = await backend.generate_scene(req.prompt)
        return ImageResponse(image_url=image.to_data_url())

    # placeMonument, the last member of the discriminated union.
    image = await backend.place_monument(
        req.scene_image.to_payload(),
        req.monument_image.to_payload(),
        req.prompt,
    )
    return FinalImageResponse(final_image_url=image.to_data_url())


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~monumentmixer.core.config.config`
    (``MONUMENT_SERVER_HOST`` and ``MONUMENT_SERVER_PORT``).  Defaults to
    ``0.0.0.0:8000``.

    This function is registered as the ``monument-mixer-api`` console script
    in ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "monumentmixer.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
