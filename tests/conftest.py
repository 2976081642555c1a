# tests/conftest.py
import io
import sqlite3
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

from dat2sql.context import ParserContext
from dat2sql.db import create_schema, make_engine
from dat2sql.grammars import get_grammar
from dat2sql.pipeline import run
from dat2sql.settings import ParserConfig

DATA_DIR = Path(__file__).parent / "data"


# --- Sample flat files ---
@pytest.fixture(scope="session")
def data_dir():
    return DATA_DIR


@pytest.fixture(scope="session")
def uniprot_text():
    return (DATA_DIR / "uniprot_sample.dat").read_text(encoding="utf-8")


@pytest.fixture(scope="session")
def enzyme_text():
    return (DATA_DIR / "enzyme_sample.dat").read_text(encoding="utf-8")


# --- In-memory SQLite engine with one grammar's schema ---
@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    db = TestingSession()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def uniprot_schema(engine):
    grammar = get_grammar("uniprot")
    create_schema(engine, grammar.tables, grammar.views)
    return engine


# --- Fresh run context ---
@pytest.fixture
def make_context():
    def _make(grammar="uniprot", **options):
        return ParserContext.from_config(ParserConfig(grammar=grammar, **options))
    return _make


# --- Run the pipeline on text and return the SQL script ---
@pytest.fixture
def convert():
    def _convert(text, grammar="uniprot", **options):
        out = io.StringIO()
        config = ParserConfig(grammar=grammar, **options)
        run(config, lines=text.splitlines(), out=out)
        return out.getvalue()
    return _convert


# --- Execute an emitted script with the stdlib sqlite3 driver ---
@pytest.fixture
def load_script():
    connections = []

    def _load(script, conn=None):
        if conn is None:
            conn = sqlite3.connect(":memory:")
            connections.append(conn)
        conn.executescript(script)
        return conn
    yield _load
    for conn in connections:
        conn.close()


# --- Row counting on a sqlite3 connection ---
@pytest.fixture
def count():
    def _count(conn, table, where="", *params):
        sql = f"SELECT COUNT(*) FROM {table}"
        if where:
            sql += f" WHERE {where}"
        return conn.execute(sql, params).fetchone()[0]
    return _count
