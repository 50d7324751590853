from .base import Base
from .session import engine


def init_db():
    """Create all tables (development / first boot)"""
    import kindplate.models  # noqa: F401  register mappers

    Base.metadata.create_all(bind=engine)


__all__ = ["Base", "engine", "init_db"]
