from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from kindplate.core.config import settings


def build_engine(url: str = None) -> Engine:
    url = url or settings.database_url
    if url.startswith("sqlite"):
        # local runs; sqlite has no connection pool options
        return create_engine(url, echo=settings.SQL_ECHO, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        echo=settings.SQL_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
    )


engine = build_engine()

# services hand committed rows back to the routers
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
)
