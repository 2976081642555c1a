from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from sqlalchemy import Table, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def make_engine(url: str, echo: bool = False) -> Engine:
    engine = create_engine(url, future=True, echo=echo)
    if engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys unenforced unless asked per connection
        @event.listens_for(engine, "connect")
        def _fk_on(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
    return engine


def create_schema(engine: Engine, tables: Iterable[Table], views=()):
    """Create the given tables (and view DDL) if they don’t exist."""
    Base.metadata.create_all(bind=engine, tables=list(tables))
    with engine.begin() as conn:
        for ddl in views:
            conn.execute(ddl)


@contextmanager
def session_scope(engine: Engine, session_factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    factory = session_factory or sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db: Session = factory()
    try:
        yield db
    finally:
        db.close()
