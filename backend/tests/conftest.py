"""Root conftest — shared test configuration, async DB and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB
    - db_manager patched: workflows open their own sessions through it
    - Assertions read state back through a fresh session, never a stale identity map

Design Decisions:
    - SQLite in-memory with StaticPool: one shared connection, so every session
      sees the same database (PostgreSQL row locks are not exercised here)
    - Seeding through a factory fixture: each test states the batch size it needs
"""

import os

# Never point tests at a real database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("LOG_FORMAT", "text")

from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

import academy.infrastructure.database as db_module  # noqa: E402
from academy.core.domain_types import Actor, ActorRole, UserId  # noqa: E402
from academy.db.base import Base  # noqa: E402
from academy.infrastructure.database import (  # noqa: E402
    DatabaseSessionManager, get_db,
)
from academy.main import app  # noqa: E402
from academy.models import Batch, Course, User  # noqa: E402
from academy.services.enrollment_workflow import EnrollmentWorkflow  # noqa: E402
from academy.services.transaction import RetryPolicy  # noqa: E402


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def test_db_manager(test_engine, test_session_factory):
    """DatabaseSessionManager bound to the test engine (error mapping included)."""
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
def workflow(test_db_manager):
    return EnrollmentWorkflow(
        test_db_manager.session, retry=RetryPolicy(base_delay_ms=1),
    )


@pytest.fixture
async def client(test_session_factory, test_db_manager):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    db_module.db_manager = test_db_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


def _catalog_seeder(session_factory):
    """Insert an admin, some students, a course and one batch.

    Returns a namespace with admin/students as Actors plus course_id, batch_id.
    """
    async def _seed(
        max_students: int = 1,
        students: int = 2,
        batch_status: str = "upcoming",
        with_instructor: bool = False,
    ) -> SimpleNamespace:
        tag = uuid4().hex[:8]
        async with session_factory() as db:
            admin = User(
                name="Ada Admin", email=f"admin-{tag}@academy.test", role="admin",
            )
            learners = [
                User(
                    name=f"Student {i}",
                    email=f"student{i}-{tag}@academy.test",
                    phone_number=f"555-010{i}",
                    role="student",
                )
                for i in range(students)
            ]
            instructor = User(
                name="Ian Instructor", email=f"instructor-{tag}@academy.test",
                role="instructor",
            )
            course = Course(
                name="Python Foundations", duration="8 weeks",
                price=Decimal("199.00"),
            )
            db.add_all([admin, instructor, *learners, course])
            await db.flush()
            batch = Batch(
                course_id=course.id,
                instructor_id=instructor.id if with_instructor else None,
                name="Evening cohort",
                max_students=max_students,
                current_students=0,
                status=batch_status,
            )
            db.add(batch)
            await db.commit()
            return SimpleNamespace(
                admin=Actor(UserId(admin.id), ActorRole.ADMIN),
                instructor=Actor(UserId(instructor.id), ActorRole.INSTRUCTOR),
                students=[
                    Actor(UserId(s.id), ActorRole.STUDENT) for s in learners
                ],
                course_id=course.id,
                batch_id=batch.id,
            )

    return _seed


@pytest.fixture
def seed_catalog(test_session_factory):
    return _catalog_seeder(test_session_factory)


@pytest.fixture
async def file_db_manager(tmp_path):
    """DatabaseSessionManager on a file SQLite database: real separate connections."""
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'academy.db'}")
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
def seed_file_catalog(file_db_manager):
    return _catalog_seeder(file_db_manager.session)


@pytest.fixture
def load(test_session_factory):
    """Read one row through a fresh session."""
    async def _load(model, row_id):
        async with test_session_factory() as db:
            return await db.get(model, row_id)

    return _load


@pytest.fixture
def headers():
    """X-Actor-* headers for an Actor, as the upstream gateway would send them."""
    def _headers(actor: Actor) -> dict[str, str]:
        return {"X-Actor-Id": str(actor.id), "X-Actor-Role": actor.role.value}

    return _headers
