import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core import config
from app.core.logging_config import setup_logging
from app.api.routes import payments, identity_webhook, system

setup_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Chef Dhundo API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(payments.router)
app.include_router(identity_webhook.router)
app.include_router(system.router)


# ============================================
# ✅ ERROR ENVELOPE FOR MALFORMED REQUESTS
# ============================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Field names only; submitted values stay out of logs and responses
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    logger.info(f"Request validation failed: {request.method} {request.url.path}, fields={fields}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request payload."},
    )


# ============================================
# ✅ ERROR ENVELOPE FOR ANYTHING UNHANDLED
# ============================================

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# ============================================
# ✅ STARTUP MIGRATIONS
# ============================================

@app.on_event("startup")
def run_startup_migrations():
    if not config.RUN_MIGRATIONS:
        return
    from app.db.migrate import run_migrations
    run_migrations()


@app.get("/")
def root():
    return {"status": "Chef Dhundo API running"}
