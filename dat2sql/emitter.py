# dat2sql/emitter.py
"""
Turns one frozen Record into the ordered statement list that creates its rows:

    1. entity row
    2. accession / cross-reference link rows
    3. nested cross-reference rows (shared rows first, then their links)
    4. scalar-attribute rows
    5. list-attribute rows, duplicate (entity, attribute, value) triples dropped

Lookup rows for interned names and values are placed just before the first
statement that references them.
"""
import logging
from typing import TYPE_CHECKING, FrozenSet, List, Optional, Set, Tuple

from sqlalchemy import Table
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.elements import ColumnElement

from .errors import MissingIdentifierError
from .interner import StringInterner
from .records import Record

if TYPE_CHECKING:
    from .context import ParserContext

log = logging.getLogger(__name__)

Statements = List[Insert]


class RelationalEmitter:
    entity_table: Table
    scalar_table: Table
    list_table: Table
    id_column: str
    # scalar fields stored as entity columns instead of attribute rows
    entity_fields: FrozenSet[str] = frozenset()

    def __init__(self, context: "ParserContext"):
        self.context = context

    # -----------------------------------------------------------------
    # Interning helpers
    # -----------------------------------------------------------------
    def name_ref(self, text: str, out: Statements) -> ColumnElement:
        return self._interned(self.context.names, text, out)

    def value_ref(self, text: str, out: Statements) -> ColumnElement:
        return self._interned(self.context.values, text, out)

    @staticmethod
    def _interned(interner: StringInterner, text: str, out: Statements) -> ColumnElement:
        ref, new = interner.intern_new(text)
        if new:
            out.append(interner.insert_row(text))
        return ref

    # -----------------------------------------------------------------
    # Hooks for the grammars
    # -----------------------------------------------------------------
    def accept(self, record: Record) -> bool:
        """False when the record must be skipped entirely (e.g. filtered out)."""
        return True

    def entity_row(self, record: Record) -> Insert:
        raise NotImplementedError

    def link_rows(self, record: Record, out: Statements):
        pass

    def nested_rows(self, record: Record, out: Statements):
        pass

    # -----------------------------------------------------------------
    # Shared steps
    # -----------------------------------------------------------------
    def scalar_rows(self, record: Record, out: Statements):
        for name, value in record.scalars.items():
            if name in self.entity_fields:
                continue
            name_id = self.name_ref(name, out)
            value_id = self.value_ref(value, out)
            out.append(
                insert(self.scalar_table)
                .values({self.id_column: record.identifier, "name_id": name_id, "value_id": value_id})
                .on_conflict_do_nothing()
            )

    def list_rows(self, record: Record, out: Statements):
        seen: Set[Tuple[str, str]] = set()
        for name, values in record.lists.items():
            for value in values:
                if (name, value) in seen:
                    continue
                seen.add((name, value))
                name_id = self.name_ref(name, out)
                value_id = self.value_ref(value, out)
                out.append(
                    insert(self.list_table)
                    .values({self.id_column: record.identifier, "name_id": name_id, "value_id": value_id})
                    .on_conflict_do_nothing()
                )

    def emit(self, record: Record) -> Optional[Statements]:
        """
        Statements for `record`, or None when the record is skipped
        (filtered out, or a repeat of an identifier already emitted).
        """
        if not record.identifier:
            raise MissingIdentifierError()
        if not self.accept(record):
            log.debug("record %s filtered out", record.identifier)
            return None
        if not self.context.record_ids.add(record.identifier):
            log.warning("duplicate record identifier %s; keeping the first occurrence", record.identifier)
            return None

        out: Statements = [self.entity_row(record)]
        self.link_rows(record, out)
        self.nested_rows(record, out)
        self.scalar_rows(record, out)
        self.list_rows(record, out)
        return out
