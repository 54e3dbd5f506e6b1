import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from poupapig_assistant.config import settings
from poupapig_assistant.dependencies import Container, build_container
from poupapig_assistant.errors import AppError, RateLimitExceeded
from poupapig_assistant.routes import router

logger = logging.getLogger(__name__)


def _error_body(message: str, code: str) -> dict:
    return {"status": "error", "error": message, "code": code}


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    body = _error_body(exc.message, exc.code)
    headers = None
    if isinstance(exc, RateLimitExceeded):
        body["retry_after"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", "INTERNAL_ERROR"),
    )


def create_app(container: Container | None = None) -> FastAPI:
    """Build the API. A prebuilt container skips infrastructure wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.container = container or await build_container(settings)
        try:
            yield
        finally:
            if container is None:
                await app.state.container.aclose()

    app = FastAPI(title="PoupaPig Assistant", version="0.1.0", lifespan=lifespan)
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(router)
    return app


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "poupapig_assistant.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.poupapig_env == "development",
    )


if __name__ == "__main__":
    run()
