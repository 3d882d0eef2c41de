from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from urllib.parse import quote

from formbuilder.config import settings
from formbuilder.database import engine, Base
from formbuilder.deps import require_admin_page
from formbuilder.errors import (
    FormBuilderError,
    FormValidationError,
    LoginRequired,
    NotFoundError,
    PartialWriteFailure,
)
from formbuilder.services.map_loader import map_loader

# Import all models so create_all sees every table
from formbuilder.models import AdminUser, Form, Field, Submission, SubmissionValue  # noqa: F401

# Import routes
from formbuilder.routes import auth, public, dashboard, forms, submissions

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info(f"Form builder started ({settings.ENVIRONMENT})")
    yield
    map_loader.close()


# Create FastAPI app
app = FastAPI(
    title="Form Builder API",
    description="Dynamic forms with conditional fields, location answers and spreadsheet export",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============== ERROR HANDLERS ==============

@app.exception_handler(LoginRequired)
def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(f"/auth/login?redirect={quote(exc.requested_path, safe='/')}", status_code=303)


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError):
    logger.debug(f"{exc.what} not found: {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(FormValidationError)
def validation_handler(request: Request, exc: FormValidationError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "errors": exc.errors})


@app.exception_handler(PartialWriteFailure)
def partial_write_handler(request: Request, exc: PartialWriteFailure):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "saved": exc.saved, "failed": exc.failed, "saved_id": exc.saved_id},
    )


@app.exception_handler(FormBuilderError)
def form_builder_error_handler(request: Request, exc: FormBuilderError):
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(auth.login_router, prefix="/auth", tags=["Authentication"])
app.include_router(public.router, prefix="/form", tags=["Public"])
app.include_router(public.api_router, prefix="/api/public", tags=["Public"])

admin_guard = [Depends(require_admin_page)]
app.include_router(dashboard.router, prefix="/admin", tags=["Dashboard"], dependencies=admin_guard)
app.include_router(forms.router, prefix="/admin", tags=["Forms"], dependencies=admin_guard)
app.include_router(submissions.router, prefix="/admin", tags=["Submissions"], dependencies=admin_guard)


# Root endpoint
@app.get("/")
def root():
    return {
        "message": "Form Builder API",
        "status": "running",
        "docs": "/docs"
    }


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.get("/manifest.json")
def manifest():
    """Installable admin app descriptor"""
    return JSONResponse(
        media_type="application/manifest+json",
        content={
            "name": settings.APP_NAME,
            "short_name": settings.APP_SHORT_NAME,
            "description": "إدارة النماذج والاستجابات",
            "start_url": settings.ADMIN_LANDING_PATH,
            "display": "standalone",
            "background_color": "#ffffff",
            "theme_color": settings.THEME_COLOR,
            "orientation": "portrait-primary",
            "icons": [
                {"src": "/icon-192.png", "sizes": "192x192", "type": "image/png", "purpose": "any maskable"},
                {"src": "/icon-512.png", "sizes": "512x512", "type": "image/png", "purpose": "any maskable"},
            ],
        },
    )
