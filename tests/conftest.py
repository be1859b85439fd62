import json
import os

# settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused.db")
os.environ["SECRET"] = "test-secret"
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ["LLM_RETRY_BACKOFF_SECONDS"] = "0"

import httpx
import pytest

from prep_panel import database, llm_client
from prep_panel.database import Base
from prep_panel.models import Topic, User


class FakeModel:
    """Stands in for the chat-completions endpoint. Queued replies first, then ``default``."""

    def __init__(self):
        self.requests = []
        self.replies = []
        self.default = None

    def reply(self, content, status=200):
        self.replies.append((status, content))

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        if self.replies:
            status, content = self.replies.pop(0)
        elif self.default is not None:
            status, content = 200, self.default(body)
        else:
            raise AssertionError("unexpected model call")
        if status != 200:
            return httpx.Response(status, json={"error": {"message": "upstream says no"}})
        if not isinstance(content, str):
            content = json.dumps(content)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def content_payload(title="topic"):
    return {
        "key_points": [f"Point about {title}", "Shipped it", "Measured it"],
        "script": f"I worked on {title}.",
        "cross_questions": [{"question": f"Why {title}?", "answer": "Because it scaled."}],
    }


@pytest.fixture
def model(monkeypatch):
    fake = FakeModel()
    monkeypatch.setattr(llm_client, "HTTP_TRANSPORT", httpx.MockTransport(fake.handler))
    return fake


@pytest.fixture
async def engine(tmp_path):
    eng = database.configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'prep.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def db(engine):
    async with database.async_session_maker() as session:
        yield session


@pytest.fixture
async def user(db):
    u = User(email="candidate@example.com", hashed_password="not-a-real-hash", is_active=True)
    db.add(u)
    await db.commit()
    return u


@pytest.fixture
async def other_user(db):
    u = User(email="someone@example.com", hashed_password="not-a-real-hash", is_active=True)
    db.add(u)
    await db.commit()
    return u


@pytest.fixture
async def topic(db, user):
    t = Topic(user_id=user.id, title="Apache Kafka", slug="apache-kafka", category="Technical", sort_order=1)
    db.add(t)
    await db.commit()
    return t


@pytest.fixture
async def client(engine, user):
    from prep_panel.main import app
    from prep_panel.utils import require_authenticated_user

    async def _current_user():
        return user

    app.dependency_overrides[require_authenticated_user] = _current_user
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
