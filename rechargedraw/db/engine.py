import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .utils import resolve_sqlite_url

load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./draw_cache.db"), ROOT_DIR
)


def make_engine(database_url: Optional[str] = None, echo: bool = False):
    """Create the engine backing the winner display cache."""
    url = resolve_sqlite_url(database_url, ROOT_DIR) if database_url else DEFAULT_SQLITE_URL
    return create_engine(url, echo=echo, future=True)


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # cached rows are read after the session closes
        future=True,
    )
