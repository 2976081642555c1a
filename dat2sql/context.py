# dat2sql/context.py
from dataclasses import dataclass, field
from typing import Tuple

from .grammars import Grammar, get_grammar
from .interner import SeenKeys, StringInterner
from .settings import ParserConfig


@dataclass
class RunStats:
    records_read: int = 0
    records_emitted: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    lines_dropped: int = 0

    def summary(self) -> str:
        return (f"read={self.records_read} emitted={self.records_emitted} "
                f"skipped={self.records_skipped} failed={self.records_failed} "
                f"dropped_lines={self.lines_dropped}")


@dataclass
class ParserContext:
    """
    Everything one run shares between accumulator, emitter and transaction
    controller. Passed explicitly; nothing is looked up by name.
    """
    config: ParserConfig
    grammar: Grammar
    names: StringInterner
    values: StringInterner
    record_ids: SeenKeys[str] = field(default_factory=SeenKeys)
    xref_keys: SeenKeys[Tuple[str, ...]] = field(default_factory=SeenKeys)
    stats: RunStats = field(default_factory=RunStats)

    @classmethod
    def from_config(cls, config: ParserConfig) -> "ParserContext":
        grammar = get_grammar(config.grammar)
        return cls(
            config=config,
            grammar=grammar,
            names=StringInterner(grammar.name_table, "name"),
            values=StringInterner(grammar.value_table, "value"),
        )

    def _caches(self):
        return (self.names, self.values, self.record_ids, self.xref_keys)

    def commit_record(self):
        for cache in self._caches():
            cache.commit()

    def rollback_record(self):
        for cache in self._caches():
            cache.rollback()

    def summary(self) -> str:
        return (f"{self.stats.summary()} names={len(self.names)} values={len(self.values)} "
                f"records={len(self.record_ids)} xrefs={len(self.xref_keys)}")
