from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from moodsignal.core.config import settings

# DB engine
engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

# Session fabric
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Basic class for models
Base = declarative_base()

# Function for getting session in API (Dependency Injection)
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session

# Session factory used by batch jobs (CLI, training runs)
def get_session_factory():
    return AsyncSessionLocal
