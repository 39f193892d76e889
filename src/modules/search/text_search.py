# src/modules/search/text_search.py

"""
Ranked text matching over an entity's precomputed ``search_vector`` column.

PostgreSQL delegates matching and scoring to its full-text engine
(``to_tsvector`` / ``plainto_tsquery`` / ``ts_rank``). Other databases, SQLite
in tests and local development, fall back to case-insensitive substring
matching with a simple title-weighted score. Autocomplete matches word
prefixes on both. Callers receive SQLAlchemy expressions and never see the
dialect.
"""
from abc import ABC, abstractmethod
from functools import reduce
import operator

from sqlalchemy import and_, case, cast, func, literal, or_
from sqlalchemy.dialects.postgresql import REGCONFIG

from src.modules.search.sanitizer import query_terms

class TextMatcher(ABC):
    """Builds match predicates and rank expressions for sanitized queries."""

    @abstractmethod
    def match(self, vector_col, query: str):
        """Predicate: every term of ``query`` occurs in ``vector_col``."""

    @abstractmethod
    def rank(self, vector_col, title_col, query: str):
        """Relevance score of a row that satisfies ``match``; higher is better."""

    @abstractmethod
    def prefix_match(self, title_col, query: str):
        """Autocomplete predicate over a title, the last term may be a prefix."""

    @abstractmethod
    def prefix_rank(self, title_col, query: str):
        pass

class PostgresFullTextMatcher(TextMatcher):
    def __init__(self, config: str = "english"):
        self.config = config

    def _regconfig(self):
        return cast(literal(self.config), REGCONFIG)

    def _document(self, column):
        return func.to_tsvector(self._regconfig(), func.coalesce(column, ""))

    def _query(self, query: str):
        return func.plainto_tsquery(self._regconfig(), query)

    def _prefix_query(self, query: str):
        # Terms are sanitized, so no tsquery operators can sneak in
        expression = " & ".join(f"{term}:*" for term in query_terms(query))
        return func.to_tsquery(self._regconfig(), expression)

    def match(self, vector_col, query: str):
        return self._document(vector_col).op("@@")(self._query(query))

    def rank(self, vector_col, title_col, query: str):
        return func.ts_rank(self._document(vector_col), self._query(query))

    def prefix_match(self, title_col, query: str):
        return self._document(title_col).op("@@")(self._prefix_query(query))

    def prefix_rank(self, title_col, query: str):
        return func.ts_rank(self._document(title_col), self._prefix_query(query))

class LikeTextMatcher(TextMatcher):
    # Score of a term found anywhere in the searchable text vs. in the title
    BODY_WEIGHT = 0.1
    TITLE_WEIGHT = 1.0

    def match(self, vector_col, query: str):
        return and_(*[vector_col.icontains(term, autoescape=True) for term in query_terms(query)])

    def rank(self, vector_col, title_col, query: str):
        scores = [
            case((title_col.icontains(term, autoescape=True), self.TITLE_WEIGHT + self.BODY_WEIGHT),
                 else_=self.BODY_WEIGHT)
            for term in query_terms(query)
        ]
        return reduce(operator.add, scores)

    def prefix_match(self, title_col, query: str):
        # Each term must start a word of the title, as with a tsquery "term:*"
        return and_(*[
            or_(
                title_col.istartswith(term, autoescape=True),
                title_col.icontains(f" {term}", autoescape=True),
            )
            for term in query_terms(query)
        ])

    def prefix_rank(self, title_col, query: str):
        # Titles that start with the typed text come first
        return case((title_col.istartswith(query, autoescape=True), 1.0), else_=0.5)

def matcher_for_dialect(dialect_name: str, config: str = "english") -> TextMatcher:
    if dialect_name == "postgresql":
        return PostgresFullTextMatcher(config)
    return LikeTextMatcher()
