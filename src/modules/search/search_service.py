# src/modules/search/search_service.py

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import func, literal
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from src.common.cache import SuggestionCache
from src.common.config import settings
from src.common.utils.global_messages import GlobalMessages
from src.models.models import (
    Article, ContentStatus, Course, CourseLevel, CourseTag, Lesson, Resource, User, UserRole,
)
from src.modules.search import schemas
from src.modules.search.sanitizer import normalize_query, sanitize_query
from src.modules.search.text_search import TextMatcher

logger = logging.getLogger(__name__)

EntityJob = Callable[[AsyncSession], Awaitable[list]]

# Structured filters each entity type can honour. An entity type that cannot
# honour a supplied filter contributes no results.
FILTER_SUPPORT = {
    "courses": {"category", "level", "tags", "teacher_id"},
    "lessons": {"teacher_id"},
    "articles": {"category", "teacher_id"},
    "resources": {"teacher_id"},
    "teachers": {"teacher_id"},
}

class SearchValidationError(ValueError):
    """Raised for request parameters that are rejected before any data access."""

def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    return max(1, min(limit, maximum))

def parse_limit(value: Union[int, str, None]) -> Optional[int]:
    """Query-string limit as an int; blank means "use the default"."""
    if value is None or isinstance(value, int):
        return value
    if not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        raise SearchValidationError(GlobalMessages.SEARCH_INVALID_LIMIT.format(value=value))

def parse_teacher_id(value: Union[UUID, str, None]) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    if not value.strip():
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        raise SearchValidationError(GlobalMessages.SEARCH_INVALID_TEACHER_ID.format(value=value))

def lesson_count_column():
    return (
        select(func.count(Lesson.id))
        .where(Lesson.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
        .label("lesson_count")
    )

def format_user_summary(user: Optional[User]) -> Optional[schemas.UserSummary]:
    if user is None:
        return None
    return schemas.UserSummary(
        id=user.id,
        username=user.username,
        name=user.full_name,
        avatar_url=user.avatar_url,
    )

def format_course(course: Course, rank, lesson_count: int = 0) -> schemas.CourseResult:
    return schemas.CourseResult(
        id=course.id,
        title=course.title,
        slug=course.slug,
        description=course.description,
        image_url=course.image_url,
        category=course.category,
        level=course.level.value,
        tags=course.tags,
        teacher_id=course.teacher_id,
        teacher=format_user_summary(course.teacher),
        lesson_count=lesson_count or 0,
        created_at=course.created_at,
        rank=float(rank or 0),
    )

def format_lesson(lesson: Lesson, rank) -> schemas.LessonResult:
    return schemas.LessonResult(
        id=lesson.id,
        title=lesson.title,
        description=lesson.description,
        order=lesson.order,
        course_id=lesson.course_id,
        teacher_id=lesson.teacher_id,
        created_at=lesson.created_at,
        rank=float(rank or 0),
    )

def format_article(article: Article, rank) -> schemas.ArticleResult:
    return schemas.ArticleResult(
        id=article.id,
        title=article.title,
        slug=article.slug,
        excerpt=article.excerpt,
        category=article.category,
        author_id=article.author_id,
        author=format_user_summary(article.author),
        created_at=article.created_at,
        rank=float(rank or 0),
    )

def format_resource(resource: Resource, rank) -> schemas.ResourceResult:
    return schemas.ResourceResult(
        id=resource.id,
        type=resource.type.value,
        url=resource.url,
        title=resource.title,
        description=resource.description,
        course_id=resource.course_id,
        teacher_id=resource.teacher_id,
        created_at=resource.created_at,
        rank=float(rank or 0),
    )

def format_teacher(user: User, rank, courses=()) -> schemas.TeacherResult:
    return schemas.TeacherResult(
        id=user.id,
        username=user.username,
        name=user.full_name,
        bio=user.bio,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        courses=list(courses),
        rank=float(rank or 0),
    )

def teacher_name_column():
    return User.first_name + " " + User.last_name

class SearchService:
    """
    Fans a search out over the searchable entity types.

    Every entity query runs concurrently in its own session and under its own
    deadline. A failed or slow entity yields an empty list plus an entry in the
    response's ``errors`` map; the other entities are returned untouched. The
    same isolation applies to full search and to suggestions.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        matcher: TextMatcher,
        cache: SuggestionCache,
        entity_timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.matcher = matcher
        self.cache = cache
        self.entity_timeout = entity_timeout or settings.SEARCH_ENTITY_TIMEOUT_SECONDS

    # ----------------------------------------------------------------- search

    async def search(self, params: schemas.SearchParams) -> schemas.SearchResponse:
        query, level, limit, teacher_id = self._validate_search(params)
        limit = clamp_limit(limit, settings.SEARCH_DEFAULT_LIMIT, settings.SEARCH_MAX_LIMIT)
        params = params.model_copy(update={"limit": limit, "teacher_id": teacher_id})
        requested = schemas.SEARCH_TYPES if params.type == "all" else (params.type,)

        supplied = {
            name for name, value in (
                ("category", params.category),
                ("level", level),
                ("tags", params.tags),
                ("teacher_id", params.teacher_id),
            ) if value
        }
        builders = {
            "courses": partial(self._search_courses, query=query, params=params, level=level, limit=limit),
            "lessons": partial(self._search_lessons, query=query, params=params, limit=limit),
            "articles": partial(self._search_articles, query=query, params=params, limit=limit),
            "resources": partial(self._search_resources, query=query, params=params, limit=limit),
            "teachers": partial(self._search_teachers, query=query, params=params, limit=limit),
        }
        jobs = {
            entity_type: builders[entity_type]
            for entity_type in requested
            if supplied <= FILTER_SUPPORT[entity_type]
        }

        results, errors = await self._fan_out(jobs)
        return schemas.SearchResponse(
            query=params.q,
            filters=schemas.AppliedFilters(
                category=params.category,
                level=params.level,
                tags=params.tags or None,
                teacherId=params.teacher_id,
            ),
            results=schemas.SearchResults(**results),
            errors=errors,
            partial=bool(errors),
        )

    def _validate_search(
        self, params: schemas.SearchParams
    ) -> Tuple[str, Optional[CourseLevel], Optional[int], Optional[UUID]]:
        raw = params.q.strip() if params.q else ""
        if not raw and not params.has_structured_filter():
            raise SearchValidationError(GlobalMessages.SEARCH_PARAMETER_REQUIRED)

        if params.q is not None and params.q != "":
            if not settings.SEARCH_QUERY_MIN_LENGTH <= len(raw) <= settings.SEARCH_QUERY_MAX_LENGTH:
                raise SearchValidationError(GlobalMessages.SEARCH_QUERY_LENGTH.format(
                    min=settings.SEARCH_QUERY_MIN_LENGTH, max=settings.SEARCH_QUERY_MAX_LENGTH
                ))

        if params.type != "all" and params.type not in schemas.SEARCH_TYPES:
            raise SearchValidationError(GlobalMessages.SEARCH_INVALID_TYPE.format(
                value=params.type, allowed=", ".join(("all",) + schemas.SEARCH_TYPES)
            ))

        level = None
        if params.level:
            try:
                level = CourseLevel(params.level.lower())
            except ValueError:
                raise SearchValidationError(GlobalMessages.SEARCH_INVALID_LEVEL.format(
                    value=params.level, allowed=", ".join(lvl.value for lvl in CourseLevel)
                ))

        limit = parse_limit(params.limit)
        teacher_id = parse_teacher_id(params.teacher_id)

        query = sanitize_query(raw)
        if not query and not params.has_structured_filter():
            raise SearchValidationError(GlobalMessages.SEARCH_QUERY_EMPTY)
        return query, level, limit, teacher_id

    def _ranked(self, model, title_col, query: str, conditions: list, limit: int):
        """Select ``(entity, rank)`` rows: ranked text matches, or newest first without a query."""
        if query:
            rank = self.matcher.rank(model.search_vector, title_col, query).label("rank")
            conditions = [*conditions, self.matcher.match(model.search_vector, query)]
            order_by = (rank.desc(), model.created_at.desc())
        else:
            rank = literal(0.0).label("rank")
            order_by = (model.created_at.desc(),)
        return select(model, rank).where(*conditions).order_by(*order_by).limit(limit)

    async def _search_courses(self, session: AsyncSession, query, params, level, limit):
        conditions = [Course.published.is_(True)]
        if params.category:
            conditions.append(Course.category == params.category)
        if level:
            conditions.append(Course.level == level)
        if params.tags:
            conditions.append(Course.id.in_(
                select(CourseTag.course_id).where(CourseTag.tag.in_(params.tags))
            ))
        if params.teacher_id:
            conditions.append(Course.teacher_id == params.teacher_id)
        stmt = (
            self._ranked(Course, Course.title, query, conditions, limit)
            .add_columns(lesson_count_column())
            .options(selectinload(Course.teacher))
        )
        rows = (await session.execute(stmt)).all()
        return [format_course(course, rank, lesson_count) for course, rank, lesson_count in rows]

    async def _search_lessons(self, session: AsyncSession, query, params, limit):
        conditions = [Lesson.status == ContentStatus.PUBLIC]
        if params.teacher_id:
            conditions.append(Lesson.teacher_id == params.teacher_id)
        stmt = self._ranked(Lesson, Lesson.title, query, conditions, limit)
        rows = (await session.execute(stmt)).all()
        return [format_lesson(lesson, rank) for lesson, rank in rows]

    async def _search_articles(self, session: AsyncSession, query, params, limit):
        conditions = [Article.published.is_(True)]
        if params.category:
            conditions.append(Article.category == params.category)
        if params.teacher_id:
            conditions.append(Article.author_id == params.teacher_id)
        stmt = self._ranked(Article, Article.title, query, conditions, limit).options(
            selectinload(Article.author)
        )
        rows = (await session.execute(stmt)).all()
        return [format_article(article, rank) for article, rank in rows]

    async def _search_resources(self, session: AsyncSession, query, params, limit):
        conditions = []
        if params.teacher_id:
            conditions.append(Resource.teacher_id == params.teacher_id)
        stmt = self._ranked(Resource, Resource.title, query, conditions, limit)
        rows = (await session.execute(stmt)).all()
        return [format_resource(resource, rank) for resource, rank in rows]

    async def _search_teachers(self, session: AsyncSession, query, params, limit):
        conditions = [User.role == UserRole.TEACHER]
        if params.teacher_id:
            conditions.append(User.id == params.teacher_id)
        stmt = self._ranked(User, teacher_name_column(), query, conditions, limit)
        rows = (await session.execute(stmt)).all()
        courses = await self._published_courses_by_teacher(session, [user.id for user, _ in rows])
        return [format_teacher(user, rank, courses.get(user.id, [])) for user, rank in rows]

    async def _published_courses_by_teacher(
        self, session: AsyncSession, teacher_ids: List[UUID]
    ) -> Dict[UUID, List[schemas.TeacherCourse]]:
        if not teacher_ids:
            return {}
        stmt = (
            select(Course.id, Course.title, Course.slug, Course.teacher_id, lesson_count_column())
            .where(Course.teacher_id.in_(teacher_ids), Course.published.is_(True))
            .order_by(Course.created_at.desc())
        )
        courses: Dict[UUID, List[schemas.TeacherCourse]] = {}
        for row in (await session.execute(stmt)).all():
            courses.setdefault(row.teacher_id, []).append(schemas.TeacherCourse(
                id=row.id, title=row.title, slug=row.slug, lesson_count=row.lesson_count or 0,
            ))
        return courses

    # ------------------------------------------------------------ suggestions

    async def suggest(self, q: str, limit: Union[int, str, None] = None) -> schemas.SuggestionsResponse:
        limit = clamp_limit(parse_limit(limit), settings.SUGGESTION_DEFAULT_LIMIT, settings.SUGGESTION_MAX_LIMIT)
        query = normalize_query(q)
        if len(query) < settings.SEARCH_QUERY_MIN_LENGTH:
            return schemas.SuggestionsResponse(query=query)
        query = query[:settings.SEARCH_QUERY_MAX_LENGTH].strip()

        async def compute():
            response = await self._compute_suggestions(query, limit)
            # Degraded results are served but not cached
            return response.model_dump_json(), not response.partial

        payload = await self.cache.get_or_compute(
            f"suggestions:{query}:{limit}", compute, settings.SUGGESTION_CACHE_TTL_SECONDS
        )
        return schemas.SuggestionsResponse.model_validate_json(payload)

    async def _compute_suggestions(self, query: str, limit: int) -> schemas.SuggestionsResponse:
        jobs = {
            "courses": partial(self._suggest_titles, Course, "course", query, limit, Course.published.is_(True)),
            "lessons": partial(self._suggest_titles, Lesson, "lesson", query, limit, Lesson.status == ContentStatus.PUBLIC),
            "articles": partial(self._suggest_titles, Article, "article", query, limit, Article.published.is_(True)),
            "teachers": partial(self._suggest_teachers, query, limit),
        }
        results, errors = await self._fan_out(jobs)
        return schemas.SuggestionsResponse(
            query=query,
            suggestions=schemas.Suggestions(**results),
            errors=errors,
            partial=bool(errors),
        )

    async def _suggest_titles(self, model, item_type: str, query: str, limit: int, visible, session: AsyncSession):
        rank = self.matcher.prefix_rank(model.title, query).label("rank")
        stmt = (
            select(model.id, model.title, rank)
            .where(visible, self.matcher.prefix_match(model.title, query))
            .order_by(rank.desc(), model.created_at.desc())
            .limit(limit)
        )
        if hasattr(model, "slug"):
            stmt = stmt.add_columns(model.slug)
        rows = (await session.execute(stmt)).all()
        return [
            schemas.SuggestionItem(
                type=item_type,
                id=row.id,
                title=row.title,
                slug=getattr(row, "slug", None),
            )
            for row in rows
        ]

    async def _suggest_teachers(self, query: str, limit: int, session: AsyncSession):
        name = teacher_name_column()
        rank = self.matcher.prefix_rank(name, query).label("rank")
        stmt = (
            select(User.id, User.first_name, User.last_name, rank)
            .where(User.role == UserRole.TEACHER, self.matcher.prefix_match(name, query))
            .order_by(rank.desc(), User.created_at.desc())
            .limit(limit)
        )
        rows = (await session.execute(stmt)).all()
        return [
            schemas.TeacherSuggestion(id=row.id, name=f"{row.first_name} {row.last_name}".strip())
            for row in rows
        ]

    # ---------------------------------------------------------------- filters

    async def get_filters(self) -> schemas.FiltersResponse:
        """Distinct filter values currently in use by published content."""
        async with self.session_factory() as session:
            course_categories = await session.execute(
                select(Course.category).where(Course.published.is_(True)).distinct()
            )
            article_categories = await session.execute(
                select(Article.category).where(Article.published.is_(True)).distinct()
            )
            levels = await session.execute(
                select(Course.level).where(Course.published.is_(True)).distinct()
            )
            tags = await session.execute(
                select(CourseTag.tag)
                .join(Course, Course.id == CourseTag.course_id)
                .where(Course.published.is_(True))
                .distinct()
            )
            categories = set(course_categories.scalars()) | set(article_categories.scalars())
            level_values = {level.value for level in levels.scalars()}
            tag_values = set(tags.scalars())

        return schemas.FiltersResponse(
            filters=schemas.FilterOptions(
                categories=sorted(c for c in categories if c),
                levels=[lvl.value for lvl in CourseLevel if lvl.value in level_values],
                tags=sorted(t for t in tag_values if t),
            )
        )

    # ---------------------------------------------------------------- fan-out

    async def _fan_out(self, jobs: Dict[str, EntityJob]) -> Tuple[Dict[str, list], Dict[str, str]]:
        names = list(jobs)
        outcomes = await asyncio.gather(*(self._run_isolated(name, jobs[name]) for name in names))
        results: Dict[str, List] = {}
        errors: Dict[str, str] = {}
        for name, (items, error) in zip(names, outcomes):
            results[name] = items
            if error:
                errors[name] = error
        return results, errors

    async def _run_isolated(self, name: str, job: EntityJob) -> Tuple[list, Optional[str]]:
        try:
            async with self.session_factory() as session:
                items = await asyncio.wait_for(job(session), timeout=self.entity_timeout)
        except asyncio.TimeoutError:
            logger.warning("Search on %s exceeded %.1fs deadline", name, self.entity_timeout)
            return [], "timeout"
        except Exception:
            logger.exception("Search on %s failed", name)
            return [], "failed"
        return items, None
