"""Transactional unit of work over an AsyncSession.

Multi-step offer transitions (accept, counter, withdraw, create) run inside
one ``UnitOfWork`` so that either every write lands or none do::

    async with UnitOfWork(db) as uow:
        db.add(offer)
        await recount(...)
    # committed here, rolled back if the block raised
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Commit-on-success / rollback-on-error wrapper around a session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._finished = False

    async def __aenter__(self) -> "UnitOfWork":
        self._finished = False
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self._finished:
            return False
        if exc_type is None:
            await self.commit()
        else:
            logger.debug("Rolling back unit of work after %s", exc_type.__name__)
            await self.rollback()
        return False

    async def commit(self) -> None:
        await self.session.commit()
        self._finished = True

    async def rollback(self) -> None:
        await self.session.rollback()
        self._finished = True
