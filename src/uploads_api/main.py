from contextlib import asynccontextmanager
from textwrap import dedent
import logging
import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware

from database.mongo_adapter import close_mongo_adapter
from uploads_api.config.settings import Settings
from uploads_api.errors import (
    REQUEST_ID_HEADER,
    UploadsApiError,
    assign_request_id,
    handle_broad_exceptions,
    handle_pydantic_validation_errors,
    handle_uploads_api_error,
)
from uploads_api.logging_config import configure_logging
from uploads_api.routers.health import router as health_router
from uploads_api.routers.images import router as images_router
from uploads_api.routers.uploads import router as uploads_router

# Set up logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Shutting down, closing MongoDB connection")
    close_mongo_adapter()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Uploads API",
        summary="Store user images and PDF pages",
        version="v1",
        description=dedent(
            """\
        Upload images or PDFs for a user, then fetch or delete the stored files.

        | Endpoint | Notes |
        | --- | --- |
        | `POST /api/upload-image` | multipart `userId` + `file`; PDFs are converted to one PNG per page |
        | `GET /api/images/{fileId}` | streams the stored bytes |
        | `DELETE /api/images/{fileId}?userId=...` | owner only |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )

    # Add CORS middleware to work with frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.state.settings = settings

    app.include_router(uploads_router, prefix="/api", tags=["uploads"])
    app.include_router(images_router, prefix="/api", tags=["images"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=UploadsApiError,
        handler=handle_uploads_api_error,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)
    # Registered last so it wraps the broad handler and every response carries the id.
    app.middleware("http")(assign_request_id)

    logger.info(f"Created {settings.app_name} app (environment: {settings.environment})")
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
