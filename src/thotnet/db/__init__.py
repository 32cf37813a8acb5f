"""Database module for SQLite persistence.

Provides:
- Database handle with connection management and schema initialization
- One repository module per table group (profiles, courses, enrollments,
  progress, ratings, badges, articles, knowledge graph, interests, analytics)
"""

from thotnet.db.database import Database, new_id, utc_now

__all__ = ["Database", "new_id", "utc_now"]
