import asyncio
from sqlalchemy.ext.asyncio import AsyncSession

# Import the async_session from your database configuration.
from src.common.database.database import async_session, engine
from src.models.models import (
    Article, Base, ContentStatus, Course, CourseLevel, CourseTag, Lesson, Resource, ResourceType,
    User, UserRole,
)

teachers_data = [
    {"username": "amina.k", "email": "amina@example.com", "first_name": "Amina", "last_name": "Kamara",
     "bio": "Mathematics teacher focusing on algebra and geometry."},
    {"username": "tobi.o", "email": "tobi@example.com", "first_name": "Tobi", "last_name": "Okafor",
     "bio": "Physics and chemistry with lots of lab work."},
]

courses_data = [
    {"title": "Algebra Foundations", "slug": "algebra-foundations", "category": "MATH",
     "level": CourseLevel.BEGINNER, "tags": ["algebra", "equations"], "teacher": 0,
     "description": "Variables, expressions and linear equations."},
    {"title": "Linear Algebra for Engineers", "slug": "linear-algebra-engineers", "category": "MATH",
     "level": CourseLevel.ADVANCED, "tags": ["algebra", "matrices"], "teacher": 0,
     "description": "Vectors, matrices and eigenvalues."},
    {"title": "Geometry Essentials", "slug": "geometry-essentials", "category": "MATH",
     "level": CourseLevel.INTERMEDIATE, "tags": ["geometry"], "teacher": 0,
     "description": "Angles, triangles and proofs."},
    {"title": "Mechanics 101", "slug": "mechanics-101", "category": "PHYSICS",
     "level": CourseLevel.BEGINNER, "tags": ["forces", "motion"], "teacher": 1,
     "description": "Newton's laws and motion."},
]

articles_data = [
    {"title": "Why algebra matters", "slug": "why-algebra-matters", "category": "MATH", "author": 0,
     "excerpt": "A short case for learning algebra early.",
     "content": "Algebra builds the habit of reasoning about unknowns."},
    {"title": "Study tips for exams", "slug": "study-tips-for-exams", "category": "GENERAL", "author": 1,
     "excerpt": "Spaced repetition and practice tests.",
     "content": "Plan your revision in short sessions."},
]

async def seed_teachers(session: AsyncSession) -> list:
    teachers = [User(role=UserRole.TEACHER, **data) for data in teachers_data]
    session.add_all(teachers)
    await session.flush()
    return teachers

async def seed_courses(session: AsyncSession, teachers: list) -> list:
    courses = []
    for data in courses_data:
        course = Course(
            title=data["title"],
            slug=data["slug"],
            description=data["description"],
            category=data["category"],
            level=data["level"],
            teacher_id=teachers[data["teacher"]].id,
            published=True,
            course_tags=[CourseTag(tag=tag) for tag in data["tags"]],
        )
        courses.append(course)
    session.add_all(courses)
    await session.flush()
    return courses

async def seed_lessons(session: AsyncSession, courses: list):
    for course in courses:
        session.add_all([
            Lesson(
                course_id=course.id,
                teacher_id=course.teacher_id,
                title=f"{course.title}: Introduction",
                description=f"Overview of {course.title.lower()}.",
                order=1,
                status=ContentStatus.PUBLIC,
            ),
            Lesson(
                course_id=course.id,
                teacher_id=course.teacher_id,
                title=f"{course.title}: Practice set",
                order=2,
                status=ContentStatus.PRIVATE,
            ),
        ])
        session.add(Resource(
            type=ResourceType.DOCUMENT,
            url=f"https://example.com/resources/{course.slug}.pdf",
            title=f"{course.title} cheat sheet",
            course_id=course.id,
            teacher_id=course.teacher_id,
        ))

async def seed_articles(session: AsyncSession, teachers: list):
    for data in articles_data:
        session.add(Article(
            title=data["title"],
            slug=data["slug"],
            excerpt=data["excerpt"],
            content=data["content"],
            category=data["category"],
            author_id=teachers[data["author"]].id,
            published=True,
        ))

async def seed_all():
    """
    Create the tables if needed and insert demo content for the search endpoints.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # Using a transaction block to ensure all seeding operations succeed.
        async with session.begin():
            teachers = await seed_teachers(session)
            courses = await seed_courses(session, teachers)
            await seed_lessons(session, courses)
            await seed_articles(session, teachers)

if __name__ == "__main__":
    asyncio.run(seed_all())
