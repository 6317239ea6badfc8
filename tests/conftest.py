import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.core.security import get_password_hash
from app.db.database import Base, get_db
from app import models  # noqa: F401
from app.models.client import Client
from app.models.project import Project
from app.models.task import Task, TaskAssignment
from app.models.user import User

PASSWORD = "correct-horse-1"


class DummySMTP:
    """Stands in for smtplib.SMTP and records every message"""
    instances = []

    def __init__(self, host, port):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = False
        self.sent = []
        DummySMTP.instances.append(self)

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def sendmail(self, from_addr, to_addrs, msg):
        self.sent.append((from_addr, tuple(to_addrs), msg))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def smtp(monkeypatch):
    """Configure SMTP settings and capture outgoing mail"""
    from app.core.config import settings
    from app.services import email_service

    DummySMTP.instances = []
    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(settings, "SMTP_USERNAME", "mailer")
    monkeypatch.setattr(settings, "SMTP_PASSWORD", "secret")
    monkeypatch.setattr(settings, "SMTP_SECURITY", "starttls")
    monkeypatch.setattr(email_service.smtplib, "SMTP", DummySMTP)
    return DummySMTP


@pytest.fixture(autouse=True)
def no_smtp(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "SMTP_HOST", None)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    Session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


async def make_user(db, email, name="Test User", role="user", status="active", pay_rate=50, password=None):
    user = User(
        email=email,
        name=name,
        role=role,
        status=status,
        pay_rate=pay_rate,
        hashed_password=get_password_hash(password) if password else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_task(db, name="Build login page", project_name="Website", client_name="Acme", assignees=()):
    client = Client(name=client_name, archived=False)
    db.add(client)
    await db.flush()
    project = Project(name=project_name, client_id=client.id, archived=False, is_system=False)
    db.add(project)
    await db.flush()
    task = Task(project_id=project.id, name=name, status="pending", priority="regular", archived=False, is_system=False)
    db.add(task)
    await db.flush()
    for user in assignees:
        db.add(TaskAssignment(task_id=task.id, user_id=user.id))
    await db.commit()
    await db.refresh(task)
    return task


@pytest_asyncio.fixture
async def api(engine):
    """HTTP client against the app, backed by the in-memory database"""
    from app.core.rate_limit import limiter
    from app.main import app

    Session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with Session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def login(api, email, password=PASSWORD):
    response = await api.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
