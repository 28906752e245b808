import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes_auth import router as auth_router
from app.api.routes_conversation import router as conversation_router
from app.core.config_loader import settings
from app.core.errors import CorsRejected, register_exception_handlers
from app.core.logger import logger
from app.db.conversation_store import ConversationStore
from app.db.mongodb import MongoConnection
from app.models.response_models import error_response, success_response


API_VERSION = "1.0.0"


# -------------------------------------------------------------
# LIFESPAN: one Mongo client for the whole process
# -------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    mongo = MongoConnection(settings.MONGODB_URI)
    await mongo.connect()
    await ConversationStore(mongo.get_database()).ensure_indexes()
    app.state.mongo = mongo
    logger.info("Chat backend started (environment=%s)", settings.environment)
    try:
        yield
    finally:
        mongo.close()


app = FastAPI(
    title="Chat Backend API",
    description="Auth proxy and per-user conversation store",
    version=API_VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)


# -------------------------------------------------------------
# CORS
# -------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Origin",
        "X-Requested-With",
        "Content-Type",
        "Accept",
        "Authorization",
        "Cache-Control",
        "Pragma",
    ],
)


@app.middleware("http")
async def reject_unknown_origins(request: Request, call_next):
    # requests without an Origin header (curl, mobile apps) pass through
    origin = request.headers.get("origin")
    if origin and origin not in settings.allowed_origin_list:
        logger.warning("CORS: Blocked origin: %s", origin)
        rejected = CorsRejected()
        return JSONResponse(status_code=rejected.status_code, content=error_response(rejected.message))
    return await call_next(request)


# -------------------------------------------------------------
# REQUEST LOGGING
# -------------------------------------------------------------
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %s %.2fms",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


# -------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------
app.include_router(auth_router, prefix="/api")
app.include_router(conversation_router, prefix="/api")


@app.get("/")
def root():
    body = success_response("Chat Backend API")
    body.update({
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    })
    return body


@app.get("/api/health")
def health():
    body = success_response("Chat Backend API is running")
    body.update({
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
    })
    return body


# -------------------------------------------------------------
# RUN LOCAL
# -------------------------------------------------------------
def main():
    try:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.port,
            reload=not settings.is_production,
            timeout_graceful_shutdown=settings.shutdown_timeout_seconds,
        )
    except Exception:
        logger.critical("Server crashed", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
