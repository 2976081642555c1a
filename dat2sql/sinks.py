# dat2sql/sinks.py
"""
Where emitted rows go: a SQL script, a live database, or a debugging dump.

Statement sinks share one small interface so the transaction strategies do
not care which one they drive.
"""
import logging
import pprint
from typing import IO, Any, List, Protocol, Sequence

from sqlalchemy import DDL, Table
from sqlalchemy.dialects import sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateIndex, CreateTable

from .db import create_schema
from .emitter import Statements
from .errors import EmissionError
from .records import Record

log = logging.getLogger(__name__)


class StatementSink(Protocol):
    def write_schema(self, tables: Sequence[Table], views: Sequence[DDL]) -> None: ...
    def prepare(self, statements: Statements) -> Any:
        """Turn statements into whatever `execute` consumes. Must not write anything."""
        ...
    def begin(self) -> None: ...
    def execute(self, prepared: Any) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def placeholder(self, message: str) -> None: ...


class SqlTextSink:
    """Writes a SQLite script: DDL, then INSERTs between BEGIN/COMMIT pairs."""
    def __init__(self, out: IO[str]):
        self.out = out
        self.dialect = sqlite.dialect()

    def _sql(self, clause) -> str:
        return str(clause.compile(dialect=self.dialect, compile_kwargs={"literal_binds": True})).strip()

    def write_schema(self, tables: Sequence[Table], views: Sequence[DDL]):
        for table in tables:
            self.out.write(self._sql(CreateTable(table, if_not_exists=True)) + ";\n")
            for index in sorted(table.indexes, key=lambda ix: ix.name or ""):
                self.out.write(self._sql(CreateIndex(index, if_not_exists=True)) + ";\n")
        for view in views:
            self.out.write(self._sql(view) + ";\n")

    def prepare(self, statements: Statements) -> List[str]:
        try:
            return [self._sql(stmt) + ";\n" for stmt in statements]
        except Exception as e:  # compiler errors surface as many types
            raise EmissionError(f"cannot render statement: {e}") from e

    def begin(self):
        self.out.write("BEGIN TRANSACTION;\n")

    def execute(self, prepared: List[str]):
        self.out.writelines(prepared)

    def commit(self):
        self.out.write("COMMIT;\n")

    def rollback(self):
        self.out.write("ROLLBACK;\n")

    def placeholder(self, message: str):
        self.out.write("-- " + " ".join(message.split()) + "\n")


class DatabaseSink:
    """Executes the statements through a SQLAlchemy session."""
    def __init__(self, session: Session, engine: Engine):
        self.session = session
        self.engine = engine

    def write_schema(self, tables: Sequence[Table], views: Sequence[DDL]):
        create_schema(self.engine, tables, views)

    def prepare(self, statements: Statements) -> Statements:
        return statements

    def begin(self):
        if not self.session.in_transaction():
            self.session.begin()

    def execute(self, prepared: Statements):
        for stmt in prepared:
            self.session.execute(stmt)

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def placeholder(self, message: str):
        log.warning(message)


# --------------------------------------------------------------------
# Debugging dumps (no rows, no transactions)
# --------------------------------------------------------------------

def dump_json(record: Record, out: IO[str]):
    """One JSON document per line; `Record.model_validate_json` reads it back."""
    out.write(record.model_dump_json() + "\n")


def dump_pretty(record: Record, out: IO[str]):
    out.write(f"# {record}\n")
    out.write(pprint.pformat(record.model_dump(exclude_defaults=True), width=100, sort_dicts=False))
    out.write("\n")


DUMPERS = {"json": dump_json, "pretty": dump_pretty}
