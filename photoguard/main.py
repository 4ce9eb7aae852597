"""
PhotoGuard: FastAPI Application Entry Point

This module initializes the FastAPI application and defines the endpoints:
- /health: Health check with per-provider status
- /config: Non-sensitive configuration values
- /providers: Preferred provider, fallback flag, provider availability
- /moderate, /moderate/batch: Moderation without creating submissions
- /photos/...: Photo submission flow and bar staff decisions
- /users/{user_id}/flags: Abuse counter
- /metrics: Moderation statistics

The application uses a lifespan context manager to:
1. Load configuration and configure logging
2. Build the orchestrator (enable flags are resolved once, here)
3. Start loading the local model in the background
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from photoguard import __version__
from photoguard.config import Settings, configure_logging, get_settings
from photoguard.errors import (
    ImageFetchError,
    PhotoRejectedError,
    SubmissionAlreadyProcessedError,
    SubmissionForbiddenError,
    SubmissionNotFoundError,
)
from photoguard.metrics import MetricsReporter, get_metrics_store
from photoguard.moderation.orchestrator import (
    ensure_moderation_ready,
    get_moderation_orchestrator,
)
from photoguard.providers import LocalNsfwAdapter
from photoguard.registry import get_provider_registry
from photoguard.schemas import (
    BarDecisionRequest,
    BarRejectionRequest,
    BatchModerationRequest,
    BatchModerationResponse,
    ComponentHealth,
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    MetricsResponse,
    ModerationResponse,
    ProviderStatusResponse,
    SubmissionResponse,
    UserFlagsResponse,
    moderation_response_from_result,
    parse_items,
    rejection_error,
    submission_response,
)
from photoguard.storage import get_image_store
from photoguard.submissions import SubmissionItem, get_gatekeeper

logger = logging.getLogger(__name__)

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Builds the orchestrator and starts local model loading

    On shutdown:
    - Closes the image download client
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("PhotoGuard starting up...")
    logger.info("=" * 60)
    logger.info(f"Preferred provider: {settings.photo_moderation_provider.value}")
    logger.info(f"Fallback: {'enabled' if settings.photo_moderation_fallback else 'disabled'}")
    logger.info(f"Provider timeout: {settings.provider_timeout_seconds:.1f}s")
    logger.info(f"Upload dir: {settings.upload_dir}")
    logger.info(f"Metrics: {'enabled' if settings.track_metrics else 'disabled'}")
    logger.info(f"Debug mode: {'enabled' if settings.debug else 'disabled'}")

    orchestrator = await ensure_moderation_ready()
    enabled = [
        provider.value
        for provider, adapter in orchestrator.adapters.items()
        if adapter.is_enabled()
    ]
    if enabled:
        logger.info(f"Enabled providers: {', '.join(enabled)}")
    else:
        logger.warning("No moderation provider is enabled; every photo will need manual review")

    global _start_time
    _start_time = time.time()

    logger.info("=" * 60)
    logger.info("PhotoGuard ready to accept requests")

    yield  # Application runs here

    logger.info("PhotoGuard shutting down...")
    await get_image_store().aclose()


app = FastAPI(
    title="PhotoGuard",
    description="Content moderation for user-submitted bar photos",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _read_upload(photo: UploadFile) -> bytes:
    """
    Read an uploaded file, refusing it once it passes the store size limit.

    Raises:
        ImageFetchError: If the upload is over the limit
    """
    limit = get_image_store().max_bytes
    name = photo.filename or "<upload>"
    if photo.size is not None and photo.size > limit:
        raise ImageFetchError(name, f"Upload is {photo.size} bytes, limit is {limit}")

    data = await photo.read(limit + 1)
    if len(data) > limit:
        raise ImageFetchError(name, f"Upload is too large, limit is {limit} bytes")
    return data


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "PhotoGuard",
        "description": "Content moderation for user-submitted bar photos",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "providers": "/providers",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check orchestrator and provider status.",
)
async def health_check():
    """
    Health check endpoint for monitoring and orchestration.

    Overall status:
    - unhealthy: no provider is enabled (every photo degrades to review)
    - degraded: the preferred provider is unavailable or still loading
    - healthy: otherwise
    """
    orchestrator = get_moderation_orchestrator()
    adapters = orchestrator.adapters

    components = [
        ComponentHealth(
            name="orchestrator",
            status="healthy",
            message=(
                f"preferred={orchestrator.preferred.value}, "
                f"fallback={'on' if orchestrator.fallback_enabled else 'off'}"
            ),
        )
    ]

    for provider, adapter in adapters.items():
        latency = None
        if isinstance(adapter, LocalNsfwAdapter) and adapter.model.is_ready:
            latency = adapter.model.initialization_latency_ms

        if adapter.is_loading:
            components.append(
                ComponentHealth(name=provider.value, status="degraded", message="Model loading")
            )
        elif adapter.is_enabled():
            components.append(
                ComponentHealth(
                    name=provider.value,
                    status="healthy",
                    latency_ms=latency,
                    message=adapter.display_name,
                )
            )
        else:
            components.append(
                ComponentHealth(name=provider.value, status="unhealthy", message="Disabled")
            )

    preferred = adapters.get(orchestrator.preferred)
    if not any(adapter.is_enabled() for adapter in adapters.values()):
        overall_status = "unhealthy"
    elif preferred is None or not preferred.is_enabled() or preferred.is_loading:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        service="photoguard",
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config(settings: Settings = Depends(get_settings)):
    """
    Returns non-sensitive configuration values.

    Credentials are SecretStr and are NOT exposed; only whether they are
    configured.
    """
    return {
        "moderation": {
            "preferred_provider": settings.photo_moderation_provider.value,
            "fallback": settings.photo_moderation_fallback,
            "provider_timeout_seconds": settings.provider_timeout_seconds,
            "enabled": {
                "local_nsfw": settings.local_nsfw_moderation_enabled,
                "google_vision": settings.google_vision_moderation_enabled,
                "aws_rekognition": settings.aws_rekognition_moderation_enabled,
            },
        },
        "local_model": {
            "path": settings.nsfw_model_path,
            "input_size": settings.nsfw_input_size,
            "ready_timeout_seconds": settings.nsfw_ready_timeout_seconds,
        },
        "rekognition": {
            "region": settings.aws_region,
            "min_confidence": settings.rekognition_min_confidence,
        },
        "storage": {
            "upload_dir": settings.upload_dir,
            "max_upload_bytes": settings.max_upload_bytes,
        },
        "metrics": {"enabled": settings.track_metrics},
        "logging": {"level": settings.log_level},
        "credentials_configured": {
            "google": bool(settings.google_application_credentials),
            "aws": bool(settings.aws_access_key_id and settings.aws_secret_access_key),
        },
    }


@app.get(
    "/providers",
    response_model=ProviderStatusResponse,
    summary="Provider status",
)
async def provider_status():
    """
    Report the preferred provider, fallback flag and each provider's
    availability, in fallback order.
    """
    return get_moderation_orchestrator().get_provider_status()


@app.get("/providers/registry")
async def provider_registry():
    """List registered providers with their metadata, in fallback order."""
    registry = get_provider_registry()
    return {
        "providers": [m.model_dump(mode="json") for m in registry.list_providers()],
        "fallback_order": [p.value for p in registry.fallback_order()],
    }


@app.post(
    "/moderate",
    response_model=ModerationResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Moderate an image",
    description="Moderate an uploaded image without creating a submission.",
)
async def moderate_upload(photo: UploadFile = File(...)):
    """
    Moderate one uploaded image.

    The upload is stored only for the duration of the call. A provider
    outage yields NEEDS_REVIEW, never an error.
    """
    data = await _read_upload(photo)
    if not data:
        return _error(422, ErrorCodes.VALIDATION_ERROR, "Uploaded photo is empty")

    image_store = get_image_store()
    photo_ref = await image_store.save_upload(data, photo.filename)
    try:
        result = await get_moderation_orchestrator().moderate(photo_ref)
    finally:
        await image_store.delete_image(photo_ref)

    return moderation_response_from_result(result, image_ref=photo.filename)


@app.post(
    "/moderate/batch",
    response_model=BatchModerationResponse,
    summary="Moderate several images",
)
async def moderate_batch(request: BatchModerationRequest):
    """
    Moderate stored images or URLs concurrently.

    One image's failure never affects the others; failed items come back
    as NEEDS_REVIEW.
    """
    results = await get_moderation_orchestrator().moderate_batch(request.image_refs)
    return BatchModerationResponse(
        results=[
            moderation_response_from_result(result, image_ref=ref)
            for ref, result in zip(request.image_refs, results)
        ]
    )


@app.post(
    "/photos/submit",
    response_model=SubmissionResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Submit a drink photo",
)
async def submit_photo(
    photo: UploadFile = File(...),
    user_id: str = Form(..., min_length=1),
    bar_id: str = Form(..., min_length=1),
    items: str = Form("[]", description="JSON array of {drink_id, friend_id}"),
):
    """
    Store the photo, moderate it and create a PENDING submission.

    A rejected photo is deleted, flagged on the user and answered with
    422 PHOTO_REJECTED including the reasons and scores.
    """
    try:
        parsed_items = parse_items(items)
    except ValueError as e:
        raise HTTPException(
            status_code=422,
            detail={"code": ErrorCodes.VALIDATION_ERROR, "message": str(e), "field": "items"},
        )

    data = await _read_upload(photo)
    if not data:
        return _error(422, ErrorCodes.VALIDATION_ERROR, "Uploaded photo is empty")

    photo_ref = await get_image_store().save_upload(data, photo.filename)

    submission = await get_gatekeeper().submit_photo(
        user_id=user_id,
        bar_id=bar_id,
        photo_ref=photo_ref,
        items=[SubmissionItem.create(item.drink_id, item.friend_id) for item in parsed_items],
    )
    return submission_response(submission)


@app.get("/photos/my", response_model=list[SubmissionResponse])
async def my_submissions(user_id: str = Query(..., min_length=1)):
    """List a user's submissions, newest first."""
    return [submission_response(s) for s in get_gatekeeper().list_user_submissions(user_id)]


@app.get("/photos/bar/{bar_id}", response_model=list[SubmissionResponse])
async def bar_submissions(
    bar_id: str,
    status: str = Query("ALL", pattern="^(ALL|PENDING|VALIDATED|REJECTED)$"),
):
    """List a bar's submissions, newest first, filtered by status (ALL = no filter)."""
    return [
        submission_response(s) for s in get_gatekeeper().list_bar_submissions(bar_id, status)
    ]


@app.post(
    "/photos/{submission_id}/validate",
    response_model=SubmissionResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def validate_submission(submission_id: str, request: BarDecisionRequest):
    """Accept a PENDING submission on behalf of its bar."""
    submission = get_gatekeeper().validate_submission(submission_id, request.bar_id)
    return submission_response(submission)


@app.post(
    "/photos/{submission_id}/reject",
    response_model=SubmissionResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_submission(submission_id: str, request: BarRejectionRequest):
    """Refuse a PENDING submission on behalf of its bar."""
    submission = get_gatekeeper().reject_submission(
        submission_id, request.bar_id, reason=request.reason, comment=request.comment
    )
    return submission_response(submission)


@app.get("/users/{user_id}/flags", response_model=UserFlagsResponse)
async def user_flags(user_id: str):
    """Number of the user's photos rejected by automatic moderation."""
    return UserFlagsResponse(user_id=user_id, flags=get_gatekeeper().get_abuse_count(user_id))


@app.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Get metrics",
    description="Retrieve aggregated moderation metrics.",
)
async def get_metrics():
    """
    Return aggregated metrics: counts by provider and status, fallback
    rate, degraded calls and latency.
    """
    return MetricsReporter(get_metrics_store()).generate_report()


@app.exception_handler(PhotoRejectedError)
async def photo_rejected_handler(request: Request, exc: PhotoRejectedError) -> JSONResponse:
    """Content-risk rejection: reasons and scores go back to the client."""
    return JSONResponse(status_code=422, content=rejection_error(exc).model_dump(exclude_none=True))


@app.exception_handler(SubmissionNotFoundError)
async def submission_not_found_handler(
    request: Request, exc: SubmissionNotFoundError
) -> JSONResponse:
    return _error(404, ErrorCodes.SUBMISSION_NOT_FOUND, str(exc))


@app.exception_handler(SubmissionForbiddenError)
async def submission_forbidden_handler(
    request: Request, exc: SubmissionForbiddenError
) -> JSONResponse:
    return _error(403, ErrorCodes.SUBMISSION_FORBIDDEN, str(exc))


@app.exception_handler(SubmissionAlreadyProcessedError)
async def submission_processed_handler(
    request: Request, exc: SubmissionAlreadyProcessedError
) -> JSONResponse:
    return _error(409, ErrorCodes.SUBMISSION_ALREADY_PROCESSED, str(exc))


@app.exception_handler(ImageFetchError)
async def image_fetch_handler(request: Request, exc: ImageFetchError) -> JSONResponse:
    return _error(422, ErrorCodes.IMAGE_UNREADABLE, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.
    """
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception and returns a generic error response to avoid
    leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return _error(500, ErrorCodes.INTERNAL_ERROR, "An unexpected error occurred")
