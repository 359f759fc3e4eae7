import logging

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shortlet.core.config import get_settings
from shortlet.core.errors import InvalidArgument, ShortletError, Unavailable
from shortlet.core.logging import configure_logging
from shortlet.db.base import Base
from shortlet.db.session import engine
from shortlet.api.routers import (
    auth as auth_router,
    users as users_router,
    properties as properties_router,
    bookings as bookings_router,
    agent as agent_router,
    admin as admin_router,
)

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger("shortlet")

app = FastAPI(title=settings.PROJECT_NAME)

# ---------------------------
# CORS
# ---------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------
# Errors
# ---------------------------
def _error(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"kind": kind, "message": message}})


@app.exception_handler(ShortletError)
async def shortlet_error_handler(request: Request, exc: ShortletError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg', 'invalid value')}" if where else "Invalid request"
    return _error(status.HTTP_400_BAD_REQUEST, InvalidArgument.kind, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = "not_found" if exc.status_code == 404 else "http_error"
    return _error(exc.status_code, kind, str(exc.detail))


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
@app.exception_handler(PoolTimeoutError)
async def storage_error_handler(request: Request, exc: Exception):
    logger.error("storage unavailable on %s %s: %s", request.method, request.url.path, exc)
    return _error(Unavailable.status_code, Unavailable.kind, "Storage is temporarily unavailable")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    message = repr(exc) if settings.is_development else "Internal server error"
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", message)


# ---------------------------
# Startup
# ---------------------------
@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ---------------------------
# Routers
# ---------------------------
app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
app.include_router(users_router.router, prefix="/api/users", tags=["users"])
app.include_router(properties_router.router, prefix="/api/properties", tags=["properties"])
app.include_router(bookings_router.router, prefix="/api/bookings", tags=["bookings"])
app.include_router(agent_router.router, prefix="/api/agent", tags=["agent"])
app.include_router(admin_router.router, prefix="/api/admin", tags=["admin"])


# ---------------------------
# Health check
# ---------------------------
@app.get("/api/health")
async def health():
    return {"status": "ok"}


# ---------------------------
# Run
# ---------------------------
if __name__ == "__main__":
    uvicorn.run("shortlet.main:app", host="0.0.0.0", port=8000, reload=True)
