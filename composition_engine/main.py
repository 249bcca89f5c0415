import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from composition_engine.api.v1.routes import router as api_v1_router

logger = logging.getLogger(__name__)

# Load environment variables from .env file at the project root, if present.
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=False)

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

if env_path.exists():
    logger.info("Loaded environment from %s", env_path)
else:
    logger.info("No .env file at %s; using process environment only", env_path)

if os.environ.get("DEBUG_COMPOSITION_IMAGES", "").lower() == "true":
    logger.info(
        "Mask debug images enabled, writing to %s",
        os.environ.get("COMPOSITION_DEBUG_DIR", "/tmp/composition-debug"),
    )


def create_app() -> FastAPI:
    """
    Application factory for the Composition Engine API.

    Keeping this as a separate function makes it easier to extend
    configuration and testing later.
    """
    app = FastAPI(
        title="Composition Engine API",
        version="0.1.0",
        description="Region fitting, tile stitching and inpainting mask preparation.",
    )

    # Infrastructure-level health check (non-versioned) primarily for ops.
    @app.get("/health", tags=["health"])
    async def root_health_check() -> dict:
        """Simple root health check endpoint."""
        return {"status": "ok"}

    # Public, versioned API routes.
    app.include_router(api_v1_router)

    return app


app = create_app()
