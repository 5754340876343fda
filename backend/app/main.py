"""FastAPI application."""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .domain_errors import DomainError
from .problem_details import build_problem_details_response
from .schemas import HealthResponse
from .routers import wecom

# Create app
app = FastAPI(
    title="Trade Ops Factory Link",
    version="1.0.0",
    description="Factory WeCom messaging integration for purchase orders"
)

# Production safety checks (fail closed).
if settings.ENV.lower() == "production" and not settings.INTERNAL_API_KEY:
    raise RuntimeError("INTERNAL_API_KEY must be set in production.")
if settings.ENV.lower() == "production" and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard).")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "X-Internal-Api-Key"],
)


@app.exception_handler(DomainError)
async def handle_domain_error(_: Request, exc: DomainError):
    return build_problem_details_response(exc)


# Include routers
app.include_router(wecom.router, prefix="/api/v1")


@app.get("/api/v1/system/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok", version="1.0.0", database="ok")


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Trade Ops Factory Link API",
        "version": "1.0.0",
        "docs": "/docs"
    }
