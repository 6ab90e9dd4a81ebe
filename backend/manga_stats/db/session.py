from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manga_stats.core.config import settings

# The aggregation job opens one session per entity inside a batch, so the
# pool must cover at least view_stats_batch_size concurrent connections.
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=max(settings.db_pool_size, settings.view_stats_batch_size),
    max_overflow=settings.db_max_overflow,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
