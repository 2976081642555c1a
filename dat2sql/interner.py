# dat2sql/interner.py
"""
Run-local caches for deduplicated values.

The store's UNIQUE constraints stay the authoritative dedup boundary; these
caches only stop the same lookup or cross-reference row from being emitted
twice. Entries added while a record is in flight are forgotten when that
record is rolled back, so a later record emits them again.
"""
from typing import Dict, Generic, Hashable, List, Set, Tuple, TypeVar

from sqlalchemy import Table, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.elements import ColumnElement

K = TypeVar("K", bound=Hashable)


class SeenKeys(Generic[K]):
    """A set with record-scoped commit/rollback."""
    def __init__(self):
        self._seen: Set[K] = set()
        self._pending: List[K] = []

    def __len__(self) -> int:
        return len(self._seen)

    def add(self, key: K) -> bool:
        """Return True when `key` was not seen before."""
        if key in self._seen:
            return False
        self._seen.add(key)
        self._pending.append(key)
        return True

    def commit(self):
        self._pending.clear()

    def rollback(self):
        for key in self._pending:
            self._seen.discard(key)
        self._pending.clear()


class StringInterner:
    """
    Maps each distinct text of one lookup table to the handle rows use to refer
    to it: a sub-select on the unique text, so the store assigns the id.

    `intern(text)` returns the same handle for the same text; `intern_new(text)`
    also reports whether the lookup row still has to be emitted.
    """
    def __init__(self, table: Table, column: str):
        self.table = table
        self.column = table.c[column]
        self._refs: Dict[str, ColumnElement] = {}
        self._pending: List[str] = []

    def __len__(self) -> int:
        return len(self._refs)

    def intern_new(self, text: str) -> Tuple[ColumnElement, bool]:
        ref = self._refs.get(text)
        if ref is not None:
            return ref, False
        ref = self._refs[text] = self.reference(text)
        self._pending.append(text)
        return ref, True

    def intern(self, text: str) -> ColumnElement:
        return self.intern_new(text)[0]

    def insert_row(self, text: str) -> Insert:
        return insert(self.table).values({self.column.name: text}).on_conflict_do_nothing()

    def reference(self, text: str) -> ColumnElement:
        """Sub-select resolving `text` to the id the store assigned."""
        return select(self.table.c.id).where(self.column == text).scalar_subquery()

    def commit(self):
        self._pending.clear()

    def rollback(self):
        for text in self._pending:
            self._refs.pop(text, None)
        self._pending.clear()
