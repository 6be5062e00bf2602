"""Generic repository - the persistence verbs shared by every table.

Repositories only stage and flush changes. Committing is the caller's job
(``db.session.atomic`` / ``run_atomic``), so several repository writes can
land in one transaction.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import Base

log = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """CRUD over one mapped model."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _where(self, filters: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        for key, value in (filters or {}).items():
            column = getattr(self.model, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    async def get(self, entity_id: str) -> ModelT | None:
        return await self.session.get(self.model, entity_id)

    async def find_one(self, **filters: Any) -> ModelT | None:
        query = select(self.model).where(*self._where(filters)).limit(1)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def find(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        page: int = 1,
        page_size: int = 20,
        order_by: Any = None,
    ) -> Sequence[ModelT]:
        """Return one page of rows matching ``filters`` (equality or IN)."""
        query = select(self.model).where(*self._where(filters))
        if order_by is not None:
            query = query.order_by(order_by)
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, filters: Mapping[str, Any] | None = None) -> int:
        query = select(func.count()).select_from(self.model).where(*self._where(filters))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def insert(self, **fields: Any) -> ModelT:
        instance = self.model(**fields)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def update(self, entity_id: str, **fields: Any) -> ModelT | None:
        instance = await self.get(entity_id)
        if instance is None:
            return None
        for key, value in fields.items():
            setattr(instance, key, value)
        await self.session.flush()
        return instance
