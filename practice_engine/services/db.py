from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine


def make_engine_and_session(dsn: str):
    kwargs = {"future": True, "echo": False, "pool_pre_ping": True}
    if not dsn.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=10, pool_timeout=30)
    engine = create_async_engine(dsn, **kwargs)

    async_session = async_sessionmaker(engine, expire_on_commit=False)
    return engine, async_session


@asynccontextmanager
async def get_session(session_maker):
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_schema(engine) -> None:
    from practice_engine.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
