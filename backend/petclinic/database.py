"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default) and provides
small helpers used by the application and tests.
"""

from sqlmodel import SQLModel, create_engine, Session
from .config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    This function is intended for local development and lightweight
    scripts; production deployments should rely on a proper migration
    tool (alembic) instead.
    """
    # table classes register on SQLModel.metadata at import
    from . import models  # noqa: F401
    SQLModel.metadata.create_all(engine)
    _seed_demo_account()


def _seed_demo_account():
    """Create the configured demo login account if it does not exist yet."""
    if not (settings.DEMO_USERNAME and settings.DEMO_PASSWORD):
        return
    from .services import AuthService
    with Session(engine) as session:
        AuthService(session).ensure_account(settings.DEMO_USERNAME, settings.DEMO_PASSWORD)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    Autoflush is disabled: entities attached during a request (such as a
    blank visit) only reach the database when a repository commits.
    """
    with Session(engine, autoflush=False) as session:
        yield session
