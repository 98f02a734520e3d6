"""Read-only catalog access with a Redis read-through cache."""

import json
from typing import TYPE_CHECKING
from uuid import UUID

from learngrow.core.logging import get_logger
from learngrow.core.redis import combo_cache_key, course_cache_key

from .models import ComboBundle, Course


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = get_logger(__name__)


class CatalogService:
    """Looks up courses and combo bundles by id."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = 300,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses
            WHERE course_id = ?
        """)

        self._get_combo = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.combo_bundles
            WHERE combo_id = ?
        """)

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get a course by id, or None if it does not exist."""
        key = course_cache_key(str(course_id))
        cached = await self._cache_get(key)
        if cached is not None:
            return Course.from_dict(cached)

        logger.debug("catalog_cache_miss", kind="course", course_id=str(course_id))
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        if not row:
            return None

        course = Course.from_row(row)
        await self._cache_set(key, course.to_dict())
        return course

    async def get_courses(self, course_ids: list[UUID]) -> list[Course | None]:
        """Get several courses, preserving order; missing ids yield None."""
        return [await self.get_course(course_id) for course_id in course_ids]

    async def get_combo(self, combo_id: UUID) -> ComboBundle | None:
        """Get a combo bundle by id, or None if it does not exist."""
        key = combo_cache_key(str(combo_id))
        cached = await self._cache_get(key)
        if cached is not None:
            return ComboBundle.from_dict(cached)

        logger.debug("catalog_cache_miss", kind="combo", combo_id=str(combo_id))
        result = await self.session.aexecute(self._get_combo, [combo_id])
        row = result.one()
        if not row:
            return None

        combo = ComboBundle.from_row(row)
        await self._cache_set(key, combo.to_dict())
        return combo

    async def _cache_get(self, key: str) -> dict | None:
        if not self.redis:
            return None
        raw = await self.redis.get(key)
        return json.loads(raw) if raw else None

    async def _cache_set(self, key: str, value: dict) -> None:
        if self.redis:
            await self.redis.setex(key, self.cache_ttl_seconds, json.dumps(value))
