import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from npc_social.engine import SocialEngine
from npc_social.routes import router

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


def create_app(data_dir: Path | None = None, engine: SocialEngine | None = None) -> FastAPI:
    if engine is None:
        resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
        engine = SocialEngine.from_data_dir(resolved)
    engine.initialize()

    app = FastAPI(title="NPC Social Engine")
    app.state.engine = engine
    app.include_router(router, prefix="/api")
    return app


def create_default_app() -> FastAPI:
    """Factory for uvicorn (uses DATA_DIR env var or default)."""
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    return create_app()
