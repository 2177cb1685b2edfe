from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from datahub.core.config import get_settings


class Base(DeclarativeBase):
    pass


settings = get_settings()


def engine_url(database_url: str) -> str:
    # The `postgres` extra installs psycopg 3, not SQLAlchemy's default psycopg2.
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # Sessions are opened from the web workers and both fulfillment loop threads.
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": settings.db_pool_recycle,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
    }


database_url = engine_url(str(settings.database_url))
engine = create_engine(database_url, **engine_options(database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
