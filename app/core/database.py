"""PostgreSQL connection, session management and schema migrations."""

from collections.abc import Generator
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

# alembic/ lives at the project root, next to the app package.
ALEMBIC_DIR = Path(__file__).resolve().parents[2] / "alembic"

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def alembic_config(database_url: str | None = None) -> Config:
    """
    Build an Alembic config pointing at the project's migration scripts.

    No ini file is attached, so env.py leaves the process logging setup alone.
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    # ConfigParser interpolation: escape % from URL-encoded credentials.
    cfg.set_main_option(
        "sqlalchemy.url", (database_url or settings.DATABASE_URL).replace("%", "%%")
    )
    return cfg


def run_migrations(database_url: str | None = None) -> None:
    """Upgrade the database schema to the latest revision. No-op when already current."""
    command.upgrade(alembic_config(database_url), "head")
