"""
Proposal Genie Backend
Proposal generation, document export and PayPal-backed plan subscriptions
"""

from pathlib import Path
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from routers.payments_router import payments_router
from routers.checkout_router import checkout_router
from routers.proposal_router import proposal_router
from database import init_db
from config.settings import settings, IS_PRODUCTION

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="Proposal Genie")


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "error": "Internal Server Error"}
            )


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # Only set in production where HTTPS is guaranteed
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same {error} shape as every other failure."""
    logger.info(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": jsonable_encoder(exc.errors())},
    )


# ============================================================================
# STARTUP CHECKS - ENV KEYS
# ============================================================================
REQUIRED_KEY_MAP = {
    "PAYPAL_CLIENT_ID": settings.paypal_client_id,
    "PAYPAL_SECRET_KEY": settings.paypal_secret_key,
    "JWT_SECRET_KEY": settings.jwt_secret_key,
}


@app.on_event("startup")
async def validate_keys():
    """Validate required keys are present (non-fatal)"""
    missing = [key for key, value in REQUIRED_KEY_MAP.items() if not value]
    if missing:
        logger.warning(f"Missing configuration keys: {missing}")
    else:
        logger.info("All payment and auth keys loaded")


# Initialize database on startup
@app.on_event("startup")
async def initialize_database():
    """Create tables for subscriptions and proposals."""
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


@app.get("/health")
async def health():
    return {"ok": True}


# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(payments_router)
app.include_router(checkout_router)
app.include_router(proposal_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
