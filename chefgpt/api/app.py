"""FastAPI application - HTTP boundary of the ChefGPT service.

Endpoints:
- POST /chat           -> {content}
- POST /image-caption  -> {caption}
- POST /recipe-lookup  -> {ingredients, recipes} | {content}
- GET  /health         -> {status, version}

Errors are returned as {error, details}: 400 for invalid input (including
schema validation failures), 500 for everything else.

Run with: python app.py
Or directly: uvicorn chefgpt.api.app:app --host 0.0.0.0 --port 8888
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chefgpt.agents.orchestrator import ChatOrchestrator, initialize_orchestrator
from chefgpt.models.models import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    ImageCaptionRequest,
    ImageCaptionResponse,
    RecipeLookupRequest,
    RecipeLookupResponse,
)
from chefgpt.utils.errors import ChefGPTError, InvalidInput, UpstreamError
from chefgpt.utils.logger import logger, request_id_var


API_VERSION = "1.0.0"

_orchestrator: Optional[ChatOrchestrator] = None


def get_orchestrator() -> ChatOrchestrator:
    """Return the shared orchestrator, creating it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = initialize_orchestrator()
    return _orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the orchestrator at startup so the first request is not slower."""
    get_orchestrator()
    logger.info(f"ChefGPT API {API_VERSION} ready")
    yield


app = FastAPI(
    title="ChefGPT",
    version=API_VERSION,
    description="Recipe and cooking chat assistant backed by Gemini, Moondream and Spoonacular.",
    lifespan=lifespan,
)

# The browser UI is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log record of a request with its id.

    Exceptions no handler claimed are logged once here and turned into the
    generic 500 payload.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
    token = request_id_var.set(request_id)
    try:
        logger.info(f"{request.method} {request.url.path}")
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
            response = _error_response(500, "Failed to process request", "An unexpected error occurred")
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        request_id_var.reset(token)


def _error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    payload = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=payload.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body') or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.warning(f"Invalid request payload: {details}")
    return _error_response(400, "Invalid request", details)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    logger.warning(f"Invalid input: {exc}")
    return _error_response(400, "Invalid request", str(exc))


@app.exception_handler(ChefGPTError)
async def service_error_handler(request: Request, exc: ChefGPTError):
    extra = {"service": exc.service} if isinstance(exc, UpstreamError) else None
    logger.error(f"{type(exc).__name__}: {exc}", extra=extra)
    return _error_response(500, "Failed to process request", str(exc))


@app.post("/chat", response_model=ChatResponse, responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def chat(request: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)) -> ChatResponse:
    return await orchestrator.handle_chat(request)


@app.post(
    "/image-caption",
    response_model=ImageCaptionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def image_caption(
    request: ImageCaptionRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)
) -> ImageCaptionResponse:
    return await orchestrator.handle_image_caption(request)


@app.post(
    "/recipe-lookup",
    response_model=RecipeLookupResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def recipe_lookup(
    request: RecipeLookupRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)
) -> RecipeLookupResponse:
    return await orchestrator.handle_recipe_lookup(request)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok", "version": API_VERSION}
