# tests/conftest.py
import os

# Settings are read at import time; the app engine is never connected in tests.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused-test.db")
os.environ.setdefault("LOG_LEVEL", "warning")

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from src.common.cache import InMemoryCache
from src.common.rate_limit import SuggestionRateLimiter, limiter
from src.main import app
from src.models.models import (
    Article, Base, ContentStatus, Course, CourseLevel, CourseTag, Lesson, Resource, ResourceType,
    User, UserRole,
)
from src.modules.search.dependencies import get_search_service, get_suggestion_rate_limiter
from src.modules.search.search_service import SearchService
from src.modules.search.text_search import LikeTextMatcher

BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)


class CountingSessionFactory:
    """Session factory spy: counts every session opened against the store."""

    def __init__(self, factory):
        self.factory = factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.factory()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'search.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


def _course(title, slug, teacher, category, level, tags, day, published=True, description=None):
    return Course(
        title=title,
        slug=slug,
        description=description,
        category=category,
        level=level,
        teacher_id=teacher.id,
        published=published,
        course_tags=[CourseTag(tag=tag) for tag in tags],
        created_at=BASE_TIME + timedelta(days=day),
    )


@pytest_asyncio.fixture
async def seeded(session_factory):
    """A small catalogue: algebra-heavy maths content, a physics course and drafts."""
    amina = User(
        username="amina.k", email="amina@example.com", first_name="Amina", last_name="Kamara",
        bio="Mathematics teacher focusing on algebra and geometry.", role=UserRole.TEACHER,
        created_at=BASE_TIME,
    )
    tobi = User(
        username="tobi.o", email="tobi@example.com", first_name="Tobi", last_name="Okafor",
        bio="Physics with lots of lab work.", role=UserRole.TEACHER,
        created_at=BASE_TIME + timedelta(hours=1),
    )
    sam = User(
        username="sam.s", email="sam@example.com", first_name="Sam", last_name="Student",
        bio="Loves algebra.", role=UserRole.STUDENT,
        created_at=BASE_TIME + timedelta(hours=2),
    )

    async with session_factory() as session:
        session.add_all([amina, tobi, sam])
        await session.flush()

        courses = {
            "algebra": _course("Algebra Foundations", "algebra-foundations", amina, "MATH",
                               CourseLevel.BEGINNER, ["algebra", "equations"], 1,
                               description="Variables and linear equations."),
            "linear": _course("Linear Algebra", "linear-algebra", amina, "MATH",
                              CourseLevel.ADVANCED, ["algebra", "matrices"], 2,
                              description="Vectors and matrices."),
            "number": _course("Number Sense", "number-sense", amina, "MATH",
                              CourseLevel.BEGINNER, ["arithmetic"], 3,
                              description="Arithmetic warm-up before algebra."),
            "geometry": _course("Geometry Essentials", "geometry-essentials", amina, "MATH",
                                CourseLevel.INTERMEDIATE, ["geometry"], 4,
                                description="Angles, triangles and proofs."),
            "mechanics": _course("Mechanics 101", "mechanics-101", tobi, "PHYSICS",
                                 CourseLevel.BEGINNER, ["forces"], 5,
                                 description="Newton's laws and motion."),
            "draft": _course("Algebra Draft", "algebra-draft", amina, "DRAFTS",
                             CourseLevel.ADVANCED, ["algebra", "drafts"], 6, published=False,
                             description="Unfinished algebra material."),
        }
        session.add_all(courses.values())
        await session.flush()

        lessons = {
            "equations": Lesson(
                course_id=courses["algebra"].id, teacher_id=amina.id, title="Solving algebra equations",
                order=1, status=ContentStatus.PUBLIC, created_at=BASE_TIME + timedelta(days=7),
            ),
            "private": Lesson(
                course_id=courses["algebra"].id, teacher_id=amina.id, title="Algebra secrets",
                order=2, status=ContentStatus.PRIVATE, created_at=BASE_TIME + timedelta(days=8),
            ),
            "lab": Lesson(
                course_id=courses["mechanics"].id, teacher_id=tobi.id, title="Lab safety",
                order=1, status=ContentStatus.PUBLIC, created_at=BASE_TIME + timedelta(days=9),
            ),
        }
        articles = {
            "why": Article(
                title="Why algebra matters", slug="why-algebra-matters", category="MATH",
                excerpt="A case for algebra.", content="Reasoning about unknowns.",
                author_id=amina.id, published=True, created_at=BASE_TIME + timedelta(days=10),
            ),
            "abstract": Article(
                title="Abstract thinking", slug="abstract-thinking", category="GENERAL",
                excerpt="Thinking in models.", content="Patterns everywhere.",
                author_id=tobi.id, published=True, created_at=BASE_TIME + timedelta(days=11),
            ),
            "unpublished": Article(
                title="Algebra drafts", slug="algebra-drafts", category="MATH",
                content="Not ready.", author_id=amina.id, published=False,
                created_at=BASE_TIME + timedelta(days=12),
            ),
        }
        resources = {
            "sheet": Resource(
                type=ResourceType.DOCUMENT, url="https://example.com/algebra.pdf",
                title="Algebra cheat sheet", course_id=courses["algebra"].id, teacher_id=amina.id,
                created_at=BASE_TIME + timedelta(days=13),
            ),
        }
        session.add_all([*lessons.values(), *articles.values(), *resources.values()])
        await session.commit()

    return {
        "teachers": {"amina": amina, "tobi": tobi},
        "student": sam,
        "courses": courses,
        "lessons": lessons,
        "articles": articles,
        "resources": resources,
    }


@pytest.fixture
def counting_factory(session_factory):
    return CountingSessionFactory(session_factory)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def search_service(counting_factory, cache):
    return SearchService(counting_factory, LikeTextMatcher(), cache)


@pytest.fixture
def rate_limiter():
    return SuggestionRateLimiter("30/minute", "async+memory://")


@pytest_asyncio.fixture
async def client(search_service, rate_limiter):
    app.dependency_overrides[get_search_service] = lambda: search_service
    app.dependency_overrides[get_suggestion_rate_limiter] = lambda: rate_limiter
    limiter.reset()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
