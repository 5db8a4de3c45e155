# Store package.
#
# Backends implementing the ``ContentStore`` protocol:
#
#   github    GitHub REST API over a shared httpx.AsyncClient
#   memory    process-local snapshots for development and tests
#
# ``build_store`` picks one from settings; the application lifespan owns
# the resulting instance and the HTTP client behind it.
import httpx

from app.config import Settings
from app.store.base import CommitRef, ContentStore, Identity, ReviewRequest, StoredFile
from app.store.github import GitHubContentStore, github_headers
from app.store.memory import InMemoryContentStore

__all__ = [
    "CommitRef",
    "ContentStore",
    "GitHubContentStore",
    "Identity",
    "InMemoryContentStore",
    "ReviewRequest",
    "StoredFile",
    "build_http_client",
    "build_store",
]


def build_http_client(config: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=config.GITHUB_API_URL,
        headers=github_headers(config.GITHUB_TOKEN),
        timeout=config.HTTP_TIMEOUT,
    )


def build_store(config: Settings, client: httpx.AsyncClient | None = None) -> ContentStore:
    if config.STORE_BACKEND == "memory":
        return InMemoryContentStore(default_branch=config.GITHUB_REPO_BRANCH)
    if client is None:
        raise ValueError("the github store backend needs an HTTP client")
    return GitHubContentStore(client, config.GITHUB_REPO_OWNER, config.GITHUB_REPO_NAME)
