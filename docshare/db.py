from collections.abc import Iterator
from contextlib import contextmanager
import logging

from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import QueuePool

from docshare.config import DB_CONNECT_ARGS, DB_URL
from docshare.models import FileRecord  # noqa: F401  registers the table

logger = logging.getLogger("docshare.db")

engine = create_engine(
    DB_URL,
    connect_args=DB_CONNECT_ARGS,
    poolclass=QueuePool,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,  # Verify connections before use
    pool_recycle=3600,
    echo=False,
)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)
    logger.info("event=db_ready url=%s", engine.url.render_as_string(hide_password=True))


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


session_scope = contextmanager(get_session)