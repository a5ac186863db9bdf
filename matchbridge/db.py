from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from .models import Base


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Create the parent directory for file-backed SQLite URLs.
    """
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return
    if not url.database or url.database == ":memory:":
        return
    path = Path(url.database)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


def get_engine(database_url: str, echo: bool = False):
    _ensure_sqlite_dir(database_url)
    return create_engine(database_url, echo=echo, future=True)


def make_session(database_url: str) -> Session:
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, future=True)
    return SessionLocal()
