"""
NeSy Core FastAPI application entry point.

Pipeline: message → rubrics → {symbolic, neural} → hybrid decision → fusion → constraint gate
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import get_settings
from app.db.session import SessionLocal, check_db_connection, engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _load_runtime_state() -> int:
    """Load seeds and the persisted strictness level. Returns the seed count."""
    from app.services.seed_store import get_seed_catalogue
    from app.services.settings_service import apply_persisted_strictness

    db = SessionLocal()
    try:
        count = get_seed_catalogue().refresh(db)
        apply_persisted_strictness(db)
        return count
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("NeSy Core starting")
    try:
        try:
            check_db_connection()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        # A bad rubric file must stop the deployment, not surface on the first message
        try:
            from app.rubrics.loader import get_rubric_catalogue

            catalogue = get_rubric_catalogue()
            logger.info(
                "Rubric catalogue validated: version=%s rubrics=%d",
                catalogue.version,
                len(catalogue.rubrics),
            )
        except Exception as e:
            logger.critical("Rubric catalogue validation failed at startup: %s", e)
            raise

        try:
            seed_count = _load_runtime_state()
            logger.info("Seed catalogue loaded: %d active seeds", seed_count)
        except SQLAlchemyError:
            logger.exception("Seed catalogue load failed; serving with no seeds (run init_db?)")
            seed_count = 0

        if seed_count:
            from app.api.deps import get_embedder, get_similarity_store
            from app.services.seed_store import get_seed_catalogue
            from app.services.similarity import index_seeds

            embedder = get_embedder()
            if embedder is not None:
                await asyncio.to_thread(
                    index_seeds, get_similarity_store(), embedder, get_seed_catalogue().snapshot()
                )

        yield
    finally:
        logger.info("NeSy Core shutting down")
        engine.dispose()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Mount API routes
    from app.api.admin import router as admin_router
    from app.api.chat import router as chat_router

    app.include_router(chat_router, prefix="/api/chat", tags=["chat"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity and the active catalogues."""
        from sqlalchemy import text

        from app.rubrics.loader import get_rubric_catalogue
        from app.rubrics.strictness import get_strictness_config

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
                "rubric_version": get_rubric_catalogue().version,
                "strictness": get_strictness_config().level.value,
            }
        except Exception:
            from fastapi.responses import JSONResponse

            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
