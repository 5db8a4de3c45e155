"""
Test infrastructure for the comments webhook.

Strategy
--------
- The content store is an InMemoryContentStore wrapped in a recorder that
  logs every call, so tests can assert that skipped or rejected
  submissions never reach the store and that failure cleanup happened.
- Failures are injected per operation through ``store.fail_on``; the
  injected exception is raised instead of performing the call.
- The app's get_store dependency is overridden so every test-time request
  uses the fixture's store rather than the one built by the lifespan.
- Settings are the module-level singleton; tests that need another append
  strategy or prefix change attributes with ``monkeypatch.setattr`` so the
  original values come back after each test.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.dependencies import get_store
from app.main import app
from app.schemas import SubmissionPayload
from app.store import InMemoryContentStore

# ---------------------------------------------------------------------------
# Recording store
# ---------------------------------------------------------------------------

class RecordingStore(InMemoryContentStore):
    """InMemoryContentStore that records calls and can fail on demand."""

    def __init__(self, default_branch: str = "main") -> None:
        super().__init__(default_branch)
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        failure = self.fail_on.get(operation)
        if failure is not None:
            raise failure

    async def get_branch_head(self, branch):
        self._record("get_branch_head")
        return await super().get_branch_head(branch)

    async def create_branch(self, name, from_sha):
        self._record("create_branch")
        return await super().create_branch(name, from_sha)

    async def delete_branch(self, name):
        self._record("delete_branch")
        return await super().delete_branch(name)

    async def read_file(self, path, ref):
        self._record("read_file")
        return await super().read_file(path, ref)

    async def write_file(self, path, content, **kwargs):
        self._record("write_file")
        return await super().write_file(path, content, **kwargs)

    async def open_review_request(self, head, base, title, body):
        self._record("open_review_request")
        return await super().open_review_request(head, base, title, body)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_payload(form_name: str = "comments-article", submission_id: str | None = None, **data) -> SubmissionPayload:
    fields = {
        "name": "Ana",
        "comment": "Great post!",
        "article_slug": "intro",
        "article_title": "Intro",
    }
    fields.update(data)
    return SubmissionPayload(form_name=form_name, data=fields, id=submission_id)


def make_event(form_name: str = "comments-article", submission_id: str | None = None, **data) -> dict:
    return {"payload": make_payload(form_name, submission_id, **data).model_dump(mode="json")}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore(default_branch=settings.GITHUB_REPO_BRANCH)


@pytest.fixture
def direct_strategy(monkeypatch):
    monkeypatch.setattr(settings, "APPEND_STRATEGY", "direct")


@pytest.fixture
def review_strategy(monkeypatch):
    monkeypatch.setattr(settings, "APPEND_STRATEGY", "review")


@pytest_asyncio.fixture
async def async_client(store: RecordingStore) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    The lifespan is not run by ASGITransport, so the app never opens a
    GitHub client during tests; the overridden get_store dependency hands
    out the fixture's store instead.
    """
    app.dependency_overrides[get_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_store, None)
