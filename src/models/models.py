from typing import List
import uuid
import enum

from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, String, Text, DateTime, Uuid,
    Enum as SAEnum, UniqueConstraint,
    event, func, inspect,
)
from sqlalchemy.orm import declarative_base, relationship, backref, Mapped

Base = declarative_base()

def build_search_vector(*parts) -> str:
    """Lower-cased, whitespace-normalised concatenation of the non-empty text fields."""
    return " ".join(" ".join(str(part).split()) for part in parts if part).lower()

class UserRole(enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String(255), nullable=True)
    role = Column(SAEnum(UserRole), nullable=False, default=UserRole.STUDENT)
    search_vector = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role.value})>"

class CourseLevel(enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class Course(Base):
    __tablename__ = "courses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(255), nullable=True)
    category = Column(String(100), nullable=True, index=True)
    level = Column(SAEnum(CourseLevel), nullable=False, default=CourseLevel.BEGINNER)
    teacher_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    published = Column(Boolean, nullable=False, default=False)
    search_vector = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    teacher: Mapped[User] = relationship("User", backref=backref("courses"))
    course_tags: Mapped[List["CourseTag"]] = relationship(
        "CourseTag",
        backref="course",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> List[str]:
        return [course_tag.tag for course_tag in self.course_tags]

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title}, published={self.published})>"

class CourseTag(Base):
    __tablename__ = "course_tags"

    # Composite primary key: a tag appears at most once per course.
    course_id = Column(Uuid, ForeignKey("courses.id"), primary_key=True)
    tag = Column(String(50), primary_key=True, index=True)

    def __repr__(self):
        return f"<CourseTag(course_id={self.course_id}, tag={self.tag})>"

class ContentStatus(enum.Enum):
    DRAFT = "draft"
    PRIVATE = "private"
    PUBLIC = "public"

class Lesson(Base):
    __tablename__ = "lessons"

    __table_args__ = (
        UniqueConstraint('course_id', 'order', name='unique_course_lesson_order'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    # Independent lessons are not attached to a course
    course_id = Column(Uuid, ForeignKey("courses.id"), nullable=True, index=True)
    teacher_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    status = Column(SAEnum(ContentStatus), nullable=False, default=ContentStatus.PRIVATE)
    search_vector = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    course: Mapped[Course] = relationship("Course", backref=backref("lessons", cascade="all, delete-orphan"))

    def __repr__(self):
        return f"<Lesson(id={self.id}, title={self.title}, status={self.status.value})>"

class Article(Base):
    __tablename__ = "articles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    category = Column(String(100), nullable=True, index=True)
    author_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    published = Column(Boolean, nullable=False, default=False)
    search_vector = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    author: Mapped[User] = relationship("User", backref=backref("articles"))

    def __repr__(self):
        return f"<Article(id={self.id}, title={self.title}, published={self.published})>"

class ResourceType(enum.Enum):
    LINK = "link"
    VIDEO = "video"
    DOCUMENT = "document"
    EBOOK = "ebook"

class Resource(Base):
    __tablename__ = "resources"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    type = Column(SAEnum(ResourceType), nullable=False)
    url = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    course_id = Column(Uuid, ForeignKey("courses.id"), nullable=True, index=True)
    teacher_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    search_vector = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    course: Mapped[Course] = relationship("Course", backref=backref("resources"))

    def __repr__(self):
        return f"<Resource(id={self.id}, title={self.title}, type={self.type.value})>"

# Keep search_vector in step with the text fields on every insert and update.
SEARCHABLE_FIELDS = {
    User: ("username", "first_name", "last_name", "bio"),
    Course: ("title", "description", "category"),
    Lesson: ("title", "description", "content"),
    Article: ("title", "excerpt", "content", "category"),
    Resource: ("title", "description"),
}

def _refresh_search_vector(mapper, connection, target):
    fields = SEARCHABLE_FIELDS[mapper.class_]
    parts = [getattr(target, field) for field in fields]
    if isinstance(target, Course) and "course_tags" not in inspect(target).unloaded:
        parts.extend(course_tag.tag for course_tag in target.course_tags)
    target.search_vector = build_search_vector(*parts)

for _model in SEARCHABLE_FIELDS:
    event.listen(_model, "before_insert", _refresh_search_vector)
    event.listen(_model, "before_update", _refresh_search_vector)
