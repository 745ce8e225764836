"""
OTP Gate - Main FastAPI Application

Password login with an optional TOTP second factor:

- Account registration and password login (bcrypt)
- TOTP secret generation with otpauth provisioning URIs
- Two-factor setup confirmation, login validation, and disabling
- Signed session tokens for fully authenticated logins
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from otpgate.config import get_settings
from otpgate.routers import auth, health
from otpgate.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__, level=settings.log_level)

app = FastAPI(
    title="OTP Gate API",
    description="Password login with TOTP two-factor authentication",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

logger.info(
    "Application starting",
    app_name=settings.app_name,
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(health.router)
app.include_router(auth.router)

logger.info("All routers registered")


@app.exception_handler(status.HTTP_404_NOT_FOUND)
async def not_found_handler(request: Request, exc: Exception):
    """Unknown routes get a fail envelope; endpoint 404s keep their detail"""
    detail = getattr(exc, "detail", None)
    if detail and detail != "Not Found":
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": detail})

    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "status": "fail",
            "message": f"Route: {request.url.path} not found",
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors"""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "An unexpected error occurred. Please try again later.",
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "otpgate.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
        access_log=True
    )
