# src/modules/search/schemas.py

from datetime import datetime
from typing import Dict, List, Optional, Union
from uuid import UUID
from pydantic import BaseModel, Field

SEARCH_TYPES = ("courses", "lessons", "articles", "resources", "teachers")

class SearchParams(BaseModel):
    q: Optional[str] = None
    type: str = "all"
    # Raw query-string values are parsed by the service so bad input is a 400
    limit: Optional[Union[int, str]] = None
    category: Optional[str] = None
    level: Optional[str] = None
    tags: List[str] = []
    teacher_id: Optional[Union[UUID, str]] = None

    def has_structured_filter(self) -> bool:
        return bool(self.category or self.level or self.tags or self.teacher_id)

class UserSummary(BaseModel):
    id: UUID
    username: str
    name: str
    avatar_url: Optional[str] = None

class CourseResult(BaseModel):
    id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    level: str
    tags: List[str] = []
    teacher_id: UUID
    teacher: Optional[UserSummary] = None
    lesson_count: int = 0
    created_at: datetime
    rank: float = 0.0

class LessonResult(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    order: int
    course_id: Optional[UUID] = None
    teacher_id: UUID
    created_at: datetime
    rank: float = 0.0

class ArticleResult(BaseModel):
    id: UUID
    title: str
    slug: str
    excerpt: Optional[str] = None
    category: Optional[str] = None
    author_id: UUID
    author: Optional[UserSummary] = None
    created_at: datetime
    rank: float = 0.0

class ResourceResult(BaseModel):
    id: UUID
    type: str
    url: str
    title: str
    description: Optional[str] = None
    course_id: Optional[UUID] = None
    teacher_id: UUID
    created_at: datetime
    rank: float = 0.0

class TeacherCourse(BaseModel):
    id: UUID
    title: str
    slug: str
    lesson_count: int = 0

class TeacherResult(BaseModel):
    id: UUID
    username: str
    name: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    # Published courses, newest first
    courses: List[TeacherCourse] = []
    rank: float = 0.0

class SearchResults(BaseModel):
    courses: List[CourseResult] = []
    lessons: List[LessonResult] = []
    articles: List[ArticleResult] = []
    resources: List[ResourceResult] = []
    teachers: List[TeacherResult] = []

class AppliedFilters(BaseModel):
    category: Optional[str] = None
    level: Optional[str] = None
    tags: Optional[List[str]] = None
    teacherId: Optional[UUID] = None

class SearchResponse(BaseModel):
    success: bool = True
    query: Optional[str] = None
    filters: AppliedFilters
    results: SearchResults
    # entity type -> "failed" | "timeout"
    errors: Dict[str, str] = {}
    partial: bool = False

class SuggestionItem(BaseModel):
    type: str  # e.g. "course", "lesson", "article"
    id: UUID
    title: str
    slug: Optional[str] = None

class TeacherSuggestion(BaseModel):
    type: str = "teacher"
    id: UUID
    name: str

class Suggestions(BaseModel):
    courses: List[SuggestionItem] = []
    lessons: List[SuggestionItem] = []
    articles: List[SuggestionItem] = []
    teachers: List[TeacherSuggestion] = []

class SuggestionsResponse(BaseModel):
    success: bool = True
    query: str = ""
    suggestions: Suggestions = Field(default_factory=Suggestions)
    errors: Dict[str, str] = {}
    partial: bool = False

class FilterOptions(BaseModel):
    categories: List[str] = []
    levels: List[str] = []
    tags: List[str] = []

class FiltersResponse(BaseModel):
    success: bool = True
    filters: FilterOptions
