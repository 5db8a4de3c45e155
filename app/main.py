import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.errors import register_exception_handlers
from app.middleware import TimingMiddleware
from app.routers import submissions
from app.store import build_http_client, build_store

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    client = build_http_client(settings)
    app.state.store = build_store(settings, client)
    logger.info(
        "Comment store ready: backend=%s strategy=%s repo=%s/%s@%s",
        settings.STORE_BACKEND,
        settings.APPEND_STRATEGY,
        settings.GITHUB_REPO_OWNER,
        settings.GITHUB_REPO_NAME,
        settings.GITHUB_REPO_BRANCH,
    )
    yield
    # Shutdown
    await client.aclose()


app = FastAPI(
    title="Comments Webhook",
    description="Persists form-submitted comments as JSON documents in a Git repository",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers
app.include_router(submissions.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
