from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from autoquote.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, future=True, echo=False)
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

source_engine = (
    create_async_engine(settings.SOURCE_DATABASE_URL, future=True, echo=False)
    if settings.SOURCE_DATABASE_URL
    else engine
)
AsyncSourceSession = sessionmaker(source_engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
