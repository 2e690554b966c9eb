"""FastAPI app entry."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gridscape.adapters.openrouter.router import router as upgrade_router
from gridscape.config.settings import settings
from gridscape.util.logger import logger

# the graph client posts to the serverless function path
LEGACY_FUNCTIONS_PREFIX = "/.netlify/functions"

app = FastAPI(title=settings.app_name)
app.include_router(upgrade_router)
app.include_router(upgrade_router, prefix=LEGACY_FUNCTIONS_PREFIX)


def _blocked_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error})


@app.middleware("http")
async def request_boundary_middleware(request: Request, call_next):
    logger.debug("boundary enter method=%s path=%s", request.method, request.url.path)

    if settings.max_request_body_bytes > 0 and request.method.upper() == "POST":
        content_length_header = request.headers.get("content-length", "").strip()
        if content_length_header:
            try:
                content_length = int(content_length_header)
            except ValueError:
                await request.body()
                logger.warning("boundary reject invalid content-length path=%s", request.url.path)
                return _blocked_response(400, "invalid content-length")
            if content_length > settings.max_request_body_bytes:
                await request.body()
                logger.warning(
                    "boundary reject oversize request content_length=%s max=%s path=%s",
                    content_length,
                    settings.max_request_body_bytes,
                    request.url.path,
                )
                return _blocked_response(413, "request body too large")

    try:
        return await call_next(request)
    except Exception as exc:  # pragma: no cover - fail-safe
        logger.exception("gateway unhandled exception path=%s", request.url.path)
        return _blocked_response(500, str(exc) or "internal error")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
