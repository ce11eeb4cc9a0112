import logging
from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from pkg_registry.db import session as db_session

__all__ = ("SASessionUOW", "UOW_DEPTH_KEY")
logger = logging.getLogger(__name__)
# count of opened UOW blocks, kept in session.info
UOW_DEPTH_KEY = "uow_depth"


class SASessionUOW:
    """
    Unit Of Work over SQLAlchemy's async session.

    Without a session it takes a new one from the session factory and closes it at
    the end (standalone mode, used by CLI commands). With a given session it works
    inside the caller's transaction (services receive the session this way).

    Blocks opened on the same session can be nested: release update removes the
    release and calls release creation, both in their own blocks. Only the outermost
    block finishes the transaction (commit or rollback), nested ones just flush their
    changes and let exceptions go up.

    >>> async with SASessionUOW() as uow:  # doctest: +SKIP
    ...     service = ReleaseService(session=uow.session)
    ...     await service.delete(await service.get(package, "1.0.0"))
    ...     uow.mark_for_commit()

    """

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._owns_session = session is None
        self._need_to_commit = False
        self._is_outermost = True
        if session is None:
            session = db_session.get_session_factory()()

        self._session: AsyncSession = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def need_to_commit(self) -> bool:
        return self._need_to_commit

    @property
    def owns_session(self) -> bool:
        """True for standalone mode (session was created by the UOW)"""
        return self._owns_session

    @property
    def is_outermost(self) -> bool:
        """True when this block isn't nested into another one on the same session"""
        return self._is_outermost

    def mark_for_commit(self) -> None:
        self._need_to_commit = True

    async def __aenter__(self) -> Self:
        depth: int = self._session.info.get(UOW_DEPTH_KEY, 0)
        self._session.info[UOW_DEPTH_KEY] = depth + 1
        self._is_outermost = depth == 0
        logger.debug("[DB] Entering UOW block (depth=%i)", depth + 1)

        # given session may be already in (auto-begun) transaction
        if self._is_outermost and (self._owns_session or not self._session.in_transaction()):
            await self._session.begin()
            logger.debug("[DB] Transaction started")

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._session.info[UOW_DEPTH_KEY] = max(self._session.info[UOW_DEPTH_KEY] - 1, 0)
        if not self._is_outermost:
            if exc_type is None:
                await self._session.flush()

            return

        try:
            if exc_type is not None:
                logger.debug("[DB] UOW block failed: %r", exc_val)
                await self.rollback()
                return

            await self.flush()
            if self._need_to_commit or self._owns_session:
                await self.commit()

        finally:
            if self._owns_session:
                await self._session.close()
                logger.debug("[DB] Session closed")

    async def flush(self) -> None:
        """Sends pending changes to DB (transaction is rolled back if DB rejects them)"""
        try:
            await self._session.flush()
        except Exception as exc:
            logger.warning("[DB] Failed to flush changes: %r", exc)
            await self.rollback()
            raise

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except Exception as exc:
            logger.error("[DB] Failed to commit transaction: %r", exc)
            await self.rollback()
            raise

        self._need_to_commit = False
        logger.debug("[DB] Transaction committed")

    async def rollback(self) -> None:
        await self._session.rollback()
        self._need_to_commit = False
        logger.debug("[DB] Transaction rolled back")
