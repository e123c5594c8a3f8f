from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog_service.config.config import config
from catalog_service.config.logger_config import log
from catalog_service.infrastructure.clerk.clerk import (
    AuthenticatedUser,
    ClerkAuthService,
    get_current_user,
)
from catalog_service.infrastructure.database.session import Database
from catalog_service.infrastructure.storage.base import ObjectStorage
from catalog_service.infrastructure.storage.minio import MinioStorage
from catalog_service.interfaces.http.category import router as category_router
from catalog_service.interfaces.http.color import router as color_router
from catalog_service.interfaces.http.files import router as files_router
from catalog_service.interfaces.http.product import router as product_router
from shared.libs.observability.metrics import create_metrics_endpoint
from shared.libs.observability.middleware import metrics_middleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler: runs on startup and shutdown.
    Builds whatever the caller did not inject: database, object storage, auth.
    """
    log.info("Starting catalog-service initialization")

    owns_database = app.state.database is None
    owns_auth_service = app.state.auth_service is None

    # Startup
    try:
        if owns_database:
            app.state.database = Database(config.database_url, echo=config.DB_ECHO)
            app.state.database.verify_connection()
            if config.AUTO_CREATE_TABLES:
                app.state.database.create_tables()
            log.info("Database engine initialized")

        if app.state.storage is None:
            storage = MinioStorage(config.minio_config)
            storage.ensure_bucket()
            app.state.storage = storage
            log.info("Object storage initialized", bucket=storage.bucket_name)

        if owns_auth_service:
            app.state.auth_service = ClerkAuthService(config.clerk_config)

    except Exception as e:
        log.critical("Failed to initialize dependencies", error=str(e))
        raise

    yield

    # Shutdown
    if owns_auth_service:
        app.state.auth_service.close()
    if owns_database:
        app.state.database.dispose()
    log.info("catalog-service shutdown complete")


def create_app(
    database: Optional[Database] = None,
    storage: Optional[ObjectStorage] = None,
    auth_service: Optional[ClerkAuthService] = None,
) -> FastAPI:
    app = FastAPI(
        title="catalog-service",
        description="Catalog administration: categories, products, colors and media",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.database = database
    app.state.storage = storage
    app.state.auth_service = auth_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(metrics_middleware)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for liveness probe."""
        db_healthy = True
        try:
            app.state.database.verify_connection()
        except RuntimeError:
            db_healthy = False

        return {
            "status": "healthy" if db_healthy else "unhealthy",
            "database": "connected" if db_healthy else "disconnected",
        }

    @app.get("/me", response_model=AuthenticatedUser, tags=["auth"])
    async def read_current_user(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ):
        return current_user

    app.include_router(category_router)
    app.include_router(product_router)
    app.include_router(color_router)
    app.include_router(files_router)
    metrics_endpoint = create_metrics_endpoint()
    app.add_api_route(
        "/metrics", metrics_endpoint, name="metrics", include_in_schema=False
    )
    return app


app = create_app()  # This is what Uvicorn needs to run
