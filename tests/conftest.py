import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from microlearn.db import models
from microlearn.db.database import Base, get_db
from microlearn.dependencies import get_notification_sender
from microlearn.main import app
from microlearn.services.notifications import NotificationSender


class FakeProvider:
    """Stands in for the WhatsApp provider; records every request it gets.

    ``failures`` maps a URL path fragment to the status code to answer with.
    """

    def __init__(self):
        self.requests = []
        self.failures = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for fragment, status in self.failures.items():
            if fragment in request.url.path:
                return httpx.Response(status, json={"result": False, "info": "rejected by provider"})
        return httpx.Response(200, json={"result": True})

    @property
    def session_messages(self):
        return [r for r in self.requests if "sendSessionMessage" in r.url.path]

    @property
    def interactive_messages(self):
        return [r for r in self.requests if "sendInteractiveButtonsMessage" in r.url.path]


@pytest.fixture
def provider():
    return FakeProvider()


@pytest_asyncio.fixture
async def sender(provider):
    client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
    yield NotificationSender("https://wa.test/8076", "test-key", client=client)
    await client.aclose()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory, sender):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sender] = lambda: sender
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_learner(session):
    async def _make(name="Asha", phone="9876543210", email=None):
        learner = models.Learner(
            name=name,
            email=email or f"{name.lower()}@example.com",
            phone=phone,
            status="active",
        )
        session.add(learner)
        await session.commit()
        await session.refresh(learner)
        return learner
    return _make


@pytest.fixture
def make_course(session):
    async def _make(name="Python Basics", status="active", visibility="private"):
        course = models.Course(name=name, status=status, visibility=visibility)
        session.add(course)
        await session.commit()
        await session.refresh(course)
        return course
    return _make


@pytest.fixture
def make_progress(session):
    async def _make(course, phone="+919876543210", status="started", learner=None):
        progress = models.CourseProgress(
            learner_id=learner.id if learner else None,
            learner_name=learner.name if learner else None,
            course_id=course.id,
            course_name=course.name,
            phone_number=phone,
            status=status,
            current_day=1,
            progress_percent=0,
        )
        session.add(progress)
        await session.commit()
        await session.refresh(progress)
        return progress
    return _make
