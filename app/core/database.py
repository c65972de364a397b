from .config import DATABASE_URL, DB_STATEMENT_TIMEOUT_MS, DB_LOCK_TIMEOUT_MS, DB_IDLE_TX_TIMEOUT_MS
from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

engine = create_async_engine(
    DATABASE_URL,
    connect_args={
        "server_settings": {
            "statement_timeout": str(DB_STATEMENT_TIMEOUT_MS),
            "lock_timeout": str(DB_LOCK_TIMEOUT_MS),
            "idle_in_transaction_session_timeout": str(DB_IDLE_TX_TIMEOUT_MS),
        }
    },
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)

Base = declarative_base()

async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
