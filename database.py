import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Hosted Postgres hands out libpq-style URLs; SQLAlchemy needs the driver named.
_PG_SCHEMES = ("postgres://", "postgresql://")
_PG_DRIVER = "postgresql+psycopg://"

def database_url(env: Optional[dict] = None) -> str:
    """``DATABASE_URL`` when set (quotes stripped, psycopg driver), else the journal's sqlite file."""
    env = os.environ if env is None else env
    raw = (env.get("DATABASE_URL") or "").strip().strip("'\"")
    if not raw:
        path = env.get("DATABASE_PATH") or os.path.join(BASE_DIR, "guppy.db")
        return f"sqlite:///{path}"
    for scheme in _PG_SCHEMES:
        if raw.startswith(scheme):
            return _PG_DRIVER + raw[len(scheme):]
    return raw

def build_engine(url: str):
    if url.startswith("sqlite"):
        # sync routes share the engine across threadpool workers
        connect_args = {"check_same_thread": False}
    elif url.startswith(_PG_DRIVER):
        connect_args = {"sslmode": "require"}
    else:
        connect_args = {}
    return create_engine(url, connect_args=connect_args)

SQLALCHEMY_DATABASE_URL = database_url()
engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db(bind=None) -> None:
    """Create the storage table; the document format is versioned by its slot key."""
    import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
