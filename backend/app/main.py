import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.audit.service import AuditMiddleware
from app.core.emergencies.errors import DispatchError
from app.core.emergencies.router import router as emergencies_router
from app.logging_config import configure_logging
from app.settings import get_settings

settings = get_settings()
logger = structlog.get_logger("app.errors")


def _failure(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    logger.warning(
        "dispatch_error",
        error=type(exc).__name__,
        status_code=exc.status_code,
        message=exc.message,
        path=request.url.path,
    )
    return _failure(exc.status_code, exc.message, exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors[".".join(loc) or "body"] = err.get("msg")
    return _failure(400, "Validation failed", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return _failure(500, "Internal server error")


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Wildpark Dispatch API",
        version="0.1.0",
        docs_url="/docs" if settings.APP_DEBUG else None,
        redoc_url="/redoc" if settings.APP_DEBUG else None,
    )

    app.add_middleware(AuditMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_DEBUG else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DispatchError, dispatch_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(emergencies_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
