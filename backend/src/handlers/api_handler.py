"""Main FastAPI application handler for the feedback and icon API."""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import boto3
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from mangum import Mangum
from starlette.datastructures import UploadFile

from models.feedback import Attachment
from models.icon import ActivateIconRequest, AddIconRequest, IconRecord
from services.errors import (
    FeedbackValidationError,
    IconAlreadyExistsError,
    IconNotFoundError,
    NoActiveIconError,
    StoreError,
    UploadFatalError,
)
from services.feedback_service import FeedbackService
from services.icon_service import IconService
from services.media_service import MediaService
from services.sheets_service import SheetsService
from utils.constants import (
    DEFAULT_ALLOWED_FILE_TYPES,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MEDIA_FOLDER,
    DEFAULT_SHEET_NAME,
    MAX_FILES,
    PHOTO_FIELD_NAME,
)

logger = logging.getLogger(__name__)

UPLOADS_DIR = os.environ.get("UPLOADS_DIR", "uploads")

AVAILABLE_ROUTES = {
    "feedback": [
        "POST /api/feedback - Submit feedback with photos",
        "GET /api/feedback - Retrieve all feedback",
    ],
    "iconChanger": [
        "GET /api/app/current-icon - Get current active icon",
        "GET /api/admin/icons - Get all icons",
        "POST /api/admin/icons/activate - Activate an icon",
        "POST /api/admin/icons/add - Add new icon",
    ],
    "general": ["GET /health - Health check"],
}


def initialize_sheet_headers() -> None:
    """Write the feedback header row if missing. Failures are logged only."""
    try:
        get_feedback_service().initialize_headers()
    except StoreError as e:
        logger.error("Error initializing sheet headers: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(UPLOADS_DIR, exist_ok=True)
    await run_in_threadpool(initialize_sheet_headers)
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Feedback & Icon API",
    description="Feedback submissions with photos, and the active app icon",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount(
    "/uploads", StaticFiles(directory=UPLOADS_DIR, check_dir=False), name="uploads"
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log all API requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000

    path = request.url.path
    if duration_ms > 1000:
        logger.warning(
            "[SLOW] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 500:
        logger.error(
            "[ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 400:
        logger.info(
            "[CLIENT_ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )

    return response


# Lazy-initialized clients and services
_s3_client = None
_media_service = None
_sheets_service = None
_feedback_service = None
_icon_service = None


def reset_services():
    """Reset all lazy-initialized services. Useful for testing.

    Also resets boto3's default session so that subsequent calls to
    boto3.client() create fresh sessions within the current mock context
    (e.g., moto's mock_aws). The icon registry goes back to its bootstrap set.
    """
    global _s3_client, _media_service, _sheets_service, _feedback_service
    global _icon_service
    _s3_client = None
    _media_service = None
    _sheets_service = None
    _feedback_service = None
    _icon_service = None
    boto3.DEFAULT_SESSION = None


def get_s3_client():
    """Get or create S3 client (lazy init)."""
    global _s3_client
    if _s3_client is None:
        region = os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        _s3_client = boto3.client("s3", region_name=region)
    return _s3_client


def get_media_service():
    """Get or create MediaService (lazy init)."""
    global _media_service
    if _media_service is None:
        _media_service = MediaService(
            s3_client=get_s3_client(),
            bucket=os.environ.get("MEDIA_BUCKET"),
            public_base_url=os.environ.get("MEDIA_PUBLIC_BASE_URL"),
            folder=os.environ.get("MEDIA_FOLDER", DEFAULT_MEDIA_FOLDER),
            region=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
        )
    return _media_service


def get_sheets_service():
    """Get or create SheetsService (lazy init)."""
    global _sheets_service
    if _sheets_service is None:
        _sheets_service = SheetsService(
            spreadsheet_id=os.environ.get("GOOGLE_SHEET_ID"),
            credentials_file=os.environ.get("GOOGLE_CREDENTIALS_FILE", "a.json"),
            sheet_name=os.environ.get("SHEET_NAME", DEFAULT_SHEET_NAME),
        )
    return _sheets_service


def get_feedback_service():
    """Get or create FeedbackService (lazy init)."""
    global _feedback_service
    if _feedback_service is None:
        _feedback_service = FeedbackService(
            media_service=get_media_service(),
            sheets_service=get_sheets_service(),
            upload_concurrency=int(os.environ.get("UPLOAD_CONCURRENCY", "1")),
        )
    return _feedback_service


def get_icon_service():
    """Get or create the IconService registry (lazy init)."""
    global _icon_service
    if _icon_service is None:
        _icon_service = IconService()
    return _icon_service


def _max_file_size() -> int:
    return int(os.environ.get("MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE))


def _allowed_file_types() -> list[str]:
    configured = os.environ.get("ALLOWED_FILE_TYPES")
    if not configured:
        return DEFAULT_ALLOWED_FILE_TYPES
    return [ext.strip().lower() for ext in configured.split(",") if ext.strip()]


def _absolute_url(request: Request, url: str) -> str:
    """Resolve a site-relative icon URL against the request host."""
    if url.startswith("/"):
        return f"{str(request.base_url).rstrip('/')}{url}"
    return url


def _form_text(form, name: str) -> str | None:
    value = form.get(name)
    return value if isinstance(value, str) else None


def _file_too_large(max_size: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"File too large: maximum file size is {max_size / (1024 * 1024):g}MB",
    )


async def _collect_attachments(form) -> list[Attachment]:
    """Read the photo files from a multipart form, enforcing upload limits.

    Raises:
        HTTPException: 400 for an unexpected file field, too many files, a
            disallowed extension or an oversized file
    """
    uploads = []
    for field_name, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue
        if field_name != PHOTO_FIELD_NAME:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    "Unexpected file field: please use field name "
                    f'"{PHOTO_FIELD_NAME}" for image uploads'
                ),
            )
        uploads.append(value)

    if len(uploads) > MAX_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files: maximum {MAX_FILES} files allowed",
        )

    allowed_types = _allowed_file_types()
    max_size = _max_file_size()
    attachments = []
    for upload in uploads:
        filename = upload.filename or ""
        extension = os.path.splitext(filename)[1].lower().lstrip(".")
        if extension not in allowed_types:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Invalid file type: File type {extension or '(none)'} is not "
                    f"allowed. Allowed types: {', '.join(allowed_types)}"
                ),
            )

        # Read at most one byte past the limit
        if upload.size is not None and upload.size > max_size:
            raise _file_too_large(max_size)
        content = await upload.read(max_size + 1)
        if len(content) > max_size:
            raise _file_too_large(max_size)
        attachments.append(Attachment(content=content, filename=filename))

    return attachments


def _icon_summary(request: Request, icon: IconRecord) -> dict:
    return {
        "iconName": icon.icon_id,
        "displayName": icon.display_name,
        "url": _absolute_url(request, icon.url),
        "isActive": icon.is_active,
        "lastUpdated": icon.last_updated,
    }


# MARK: - Health Check


@app.get("/health")
async def health_check():
    """Health check endpoint with a configuration summary."""
    media_service = get_media_service()
    return {
        "success": True,
        "status": "healthy",
        "message": "Unified API is running!",
        "services": ["Feedback API", "Icon Changer API"],
        "timestamp": datetime.now(UTC).isoformat(),
        "version": "1.0.0",
        "media": {
            "configured": media_service.configured,
            "bucket": media_service.bucket or "Not configured",
        },
        "sheets": {"configured": get_sheets_service().configured},
        "activeIcons": get_icon_service().count(),
        "availableRoutes": AVAILABLE_ROUTES,
    }


# MARK: - Feedback Endpoints


async def _submit_fields(fields, attachments: list[Attachment]) -> dict:
    """Run one submission from form or JSON fields and shape the response."""
    title = _form_text(fields, "title")
    description = _form_text(fields, "description")

    logger.info(
        "Received feedback submission: title=%r files=%d",
        (title or "")[:50],
        len(attachments),
    )

    try:
        result = await run_in_threadpool(
            get_feedback_service().submit,
            title=title,
            description=description,
            user_id=_form_text(fields, "userId"),
            email_id=_form_text(fields, "emailId"),
            attachments=attachments,
            custom_date=_form_text(fields, "customDate"),
            custom_timestamp=_form_text(fields, "customTimestamp"),
        )
    except FeedbackValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UploadFatalError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload photos: {e}",
        )
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save feedback: {e}",
        )

    return {
        "success": True,
        "message": "Feedback submitted successfully",
        "data": result.model_dump(by_alias=True),
    }


@app.post("/api/feedback", status_code=status.HTTP_201_CREATED)
async def submit_feedback(request: Request):
    """Submit feedback with up to MAX_FILES photos.

    Multipart forms carry photos; JSON and urlencoded bodies are text-only.
    """
    if request.headers.get("content-type", "").startswith("application/json"):
        fields = await request.json()
        if not isinstance(fields, dict):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Request body must be a JSON object",
            )
        return await _submit_fields(fields, [])

    form = await request.form()
    try:
        attachments = await _collect_attachments(form)
        return await _submit_fields(form, attachments)
    finally:
        await form.close()


@app.get("/api/feedback")
async def list_feedback():
    """Retrieve all feedback rows."""
    try:
        entries = await run_in_threadpool(get_feedback_service().list_all)
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve feedback: {e}",
        )

    return {"success": True, "count": len(entries), "data": entries}


# MARK: - Icon Endpoints


@app.get("/api/app/current-icon")
async def get_current_icon(request: Request):
    """Get the icon client apps should display."""
    try:
        icon = get_icon_service().get_active()
    except NoActiveIconError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return {
        "success": True,
        "data": {
            "iconName": icon.icon_id,
            "displayName": icon.display_name,
            "url": _absolute_url(request, icon.url),
            "lastUpdated": icon.last_updated,
        },
    }


@app.get("/api/admin/icons")
async def list_icons(request: Request):
    """Get all registered icons."""
    icons = get_icon_service().list_all()
    return {
        "success": True,
        "data": [_icon_summary(request, icon) for icon in icons],
    }


@app.post("/api/admin/icons/activate")
async def activate_icon(body: ActivateIconRequest):
    """Make one icon the active icon."""
    if not body.icon_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="iconName is required"
        )

    try:
        icon = get_icon_service().activate(body.icon_name)
    except IconNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        "success": True,
        "message": f"Icon '{icon.display_name}' activated successfully",
        "data": {
            "activeIcon": icon.icon_id,
            "displayName": icon.display_name,
            "url": icon.url,
        },
    }


@app.post("/api/admin/icons/add")
async def add_icon(body: AddIconRequest):
    """Register a new, inactive icon."""
    if not body.icon_name or not body.display_name or not body.icon_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="iconName, displayName, and iconUrl are required",
        )

    try:
        icon = get_icon_service().add(body.icon_name, body.display_name, body.icon_url)
    except IconAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        "success": True,
        "message": "Icon added successfully",
        "data": {
            "iconName": icon.icon_id,
            "displayName": icon.display_name,
            "url": icon.url,
        },
    }


# MARK: - Error Handlers


@app.exception_handler(status.HTTP_404_NOT_FOUND)
async def not_found_handler(request: Request, exc: HTTPException):
    """List the available routes when no route matched the request."""
    if "endpoint" in request.scope:
        # A matched route raised 404 itself (e.g. no active icon)
        return await http_exception_handler(request, exc)

    logger.info("Route not found: %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "success": False,
            "error": "Endpoint not found",
            "message": f"{request.method} {request.url.path} not found",
            "availableEndpoints": AVAILABLE_ROUTES,
            "suggestion": (
                "Check the URL and HTTP method. "
                "Available endpoints are listed above."
            ),
        },
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle value errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


# MARK: - Lambda Handler

# Create the Lambda handler. Lifespan runs the sheet header bootstrap on cold start.
api_handler = Mangum(app, lifespan="auto")


# For local development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
