import time
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from gallery.config import settings, fetch_ssm_params
from gallery.errors import register_error_handlers
from gallery.logging_config import configure_logging
from gallery.routers import images
from gallery.services import BlobStore, MetadataStore

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("starting_up", env=settings.ENV, service_id=settings.SERVICE_ID)

    # 1. Fetch SSM Params
    await fetch_ssm_params()

    # 2. Bootstrap LocalStack (ensure bucket and table exist), dev/local only
    if settings.is_local:
        try:
            await BlobStore().ensure_bucket()
        except Exception as e:
            logger.error("bucket_bootstrap_failed", error=str(e))

        try:
            await MetadataStore().ensure_table()
        except Exception as e:
            logger.error("table_bootstrap_failed", error=str(e))

    yield
    logger.info("shutting_down")


def create_app() -> FastAPI:
    app = FastAPI(title="Photo Gallery Service", lifespan=lifespan, root_path=settings.ROOT_PATH)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_headers=["Content-Type", "Authorization"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    register_error_handlers(app)
    app.include_router(images.router, prefix=f"/{settings.SERVICE_ID}")
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("gallery.main:app", host="0.0.0.0", port=8000, reload=True, env_file="dev.env")

# Adapter for AWS Lambda
handler = Mangum(app)
