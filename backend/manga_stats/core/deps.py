from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from manga_stats.db.session import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; uncommitted work is rolled back if the handler fails."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
