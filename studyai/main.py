"""
Main FastAPI application
Study assistant backend: webhook-driven AI chat and flashcard pipeline
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse, Response
import logging
import time

import httpx

from studyai.config import settings
from studyai.database import init_db
from studyai.api import chapters, chat, files, flashcards, realtime, storage, webhooks
from studyai.services.dispatcher import dispatcher
from studyai.services.realtime import register_session_hooks
from studyai.utils.security import resolve_cors_headers

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_CORS_METHODS = "GET, POST, DELETE, OPTIONS"

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Backend for a study assistant with AI chat and generated flashcards",
    docs_url="/docs",
    redoc_url="/redoc"
)


# CORS middleware
@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    """Apply the origin allow-list to the API; webhooks resolve their own headers"""

    if request.url.path.startswith(webhooks.router.prefix):
        return await call_next(request)

    headers = resolve_cors_headers(request.headers.get("origin"), settings.allowed_origins_list)
    headers["Access-Control-Allow-Methods"] = API_CORS_METHODS

    if request.method == "OPTIONS" and "access-control-request-method" in request.headers:
        return Response(status_code=204, headers=headers)

    response = await call_next(request)
    response.headers.update(headers)
    return response


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""

    start_time = time.time()

    # Process request
    response = await call_next(request)

    # Calculate duration
    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )

    return response


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


# HTTP exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Format HTTP exceptions consistently"""

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring

    Returns service status and background work in flight
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "background_tasks": dispatcher.pending,
        "timestamp": time.time()
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "StudyAI Pipeline API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


# Include routers
app.include_router(chapters.router)
app.include_router(chat.router)
app.include_router(files.router)
app.include_router(flashcards.router)
app.include_router(webhooks.router)
app.include_router(storage.router)
app.include_router(realtime.router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize database and services on startup"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    register_session_hooks()
    app.state.http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    logger.info("Application startup complete")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down application")

    await dispatcher.drain(timeout=10)
    await app.state.http_client.aclose()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "studyai.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
