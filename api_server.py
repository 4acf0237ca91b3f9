"""FastAPI REST API server for Parent Copilot.

This module wires the resource routers under /api, maps errors to
``{"error": "..."}`` bodies and runs the reminder worker alongside the API.

Status codes:
- 400: request body failed validation or a required field is missing
- 404: the referenced entity does not exist
- 500: storage or unexpected failure (details are logged, never returned)
"""

import asyncio
from contextlib import suppress

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import background_worker
from config import settings
from logger_config import setup_logger
from routers import ai, care_plans, children, health, parents, reminders
from storage import StorageError, get_store

logger = setup_logger('api', 'api.log')

# Validation error types that mean "a required value was not supplied"
MISSING_ERROR_TYPES = {"missing", "string_too_short"}

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Child profiles, health records, reminders, care plans and AI parenting advice",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(children.router, prefix="/api/children", tags=["children"])
app.include_router(parents.router, prefix="/api/parents", tags=["parents"])
app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(reminders.router, prefix="/api/reminders", tags=["reminders"])
app.include_router(care_plans.router, prefix="/api/care-plans", tags=["care-plans"])
app.include_router(ai.router, prefix="/api/ai", tags=["ai"])

worker_task = None


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(error.get("type") in MISSING_ERROR_TYPES for error in errors):
        message = "Missing required fields"
    else:
        message = "Invalid request body"
    logger.info(f"Rejected {request.method} {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=500, content={"error": "Storage operation failed"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.on_event("startup")
async def startup_event():
    global worker_task
    store = get_store()

    if settings.WORKER_ENABLED:
        worker_task = asyncio.create_task(background_worker.worker_loop(store))
        logger.info("Reminder worker scheduled")
    else:
        logger.warning("Reminder worker is disabled in configuration")


@app.on_event("shutdown")
async def shutdown_event():
    global worker_task
    if worker_task is not None:
        worker_task.cancel()
        with suppress(asyncio.CancelledError):
            await worker_task
        worker_task = None
        logger.info("Reminder worker stopped")


@app.get("/")
def root():
    """Root endpoint - service information"""
    return {
        "service": settings.PROJECT_NAME,
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "health": "/api/health",
            "children": "/api/children",
            "reminders": "/api/reminders",
        }
    }


@app.get("/api/health")
def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "OK", "message": "AI Copilot for Parents API is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
