"""
Social Reports Platform - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Translates database read failures into user-facing errors
5. Registers all API route handlers and the health check endpoint

The application follows a modular architecture:
- routes/: API endpoint handlers (record CRUD, reports, exports)
- models/: SQLAlchemy ORM models
- services/: Business logic (record reads, aggregation, charts, export)
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from social_reports.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from social_reports.errors import BackendReadError
from social_reports.routes import (
    attendance, courses, enrollments, health_records, reports, social_assistance, students
)
from social_reports.database import DATABASE_URL, create_tables

# Import all models so they are registered with Base.metadata
from social_reports.models import (  # noqa: F401
    AttendanceRecord, Course, Enrollment, HealthRecord, SocialAssistanceRecord, Student
)

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# ──────────────────────────────────────────────────────────────
# Create FastAPI application
# ──────────────────────────────────────────────────────────────
app = FastAPI(
    title="Social Reports Platform",
    description=(
        "Case management for a social-services organization: students, courses, "
        "attendance, health and social-assistance records, with aggregated "
        "reports, chart data and PDF/XLSX exports."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Content-Disposition"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a unique UUID per incoming request, stores it in the
# context variable read by every log entry, returns it in the
# X-Request-ID header and logs request start/end with latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


@app.exception_handler(BackendReadError)
async def backend_read_error_handler(request: Request, exc: BackendReadError):
    """Log the technical cause; the user only sees the localized message."""
    log_with_context(logger, "ERROR",
        f"Backend read failed: {request.method} {request.url.path}: {exc}",
        context={"table": exc.table})
    return JSONResponse(status_code=502, content={"detail": exc.user_message})


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(students.router, tags=["Students"])
app.include_router(courses.router, tags=["Courses"])
app.include_router(enrollments.router, tags=["Enrollments"])
app.include_router(attendance.router, tags=["Attendance"])
app.include_router(health_records.router, tags=["Health Records"])
app.include_router(social_assistance.router, tags=["Social Assistance"])
app.include_router(reports.router, tags=["Reports"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "social-reports-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Social Reports Platform",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "students": "GET/POST /api/students",
            "courses": "GET/POST /api/courses",
            "enrollments": "GET/POST /api/enrollments",
            "attendance": "GET/POST /api/attendance",
            "health_records": "GET/POST /api/health-records",
            "social_assistance": "GET/POST /api/social-assistance",
            "reports": "GET /api/reports",
            "report": "GET /api/reports/{report_type}",
            "report_pdf": "GET /api/reports/{report_type}/export.pdf",
            "report_xlsx": "GET /api/reports/{report_type}/export.xlsx"
        }
    }
