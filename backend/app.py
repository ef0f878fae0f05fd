import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.context import build_context
from backend.routes import router
from reckoning.engine import EditorStateError, NoContentError
from reckoning.llm import AIProvider

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

logger = logging.getLogger(__name__)


def create_app(data_dir: Path | None = None, provider: AIProvider | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    use_mock = os.getenv("USE_MOCK_AI", "").lower() in ("1", "true", "yes")
    ctx = build_context(resolved, provider=provider, use_mock=use_mock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx.worker.start()
        logger.info("Reckoning started (data=%s)", resolved)
        yield
        await ctx.worker.stop()

    app = FastAPI(title="Reckoning", lifespan=lifespan)
    app.state.ctx = ctx
    app.include_router(router, prefix="/api")

    # GameNotFoundError and unknown evolutions are LookupErrors.
    @app.exception_handler(LookupError)
    async def not_found(request: Request, exc: LookupError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NoContentError)
    @app.exception_handler(EditorStateError)
    async def conflict(request: Request, exc: Exception):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def bad_request(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
