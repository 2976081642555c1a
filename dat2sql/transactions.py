# dat2sql/transactions.py
"""
Transaction strategies and the controller that drives them.

PerRecordTransactions: one transaction per record; a failing record is
    rolled back, replaced by a diagnostic placeholder and the run continues.
BatchedTransactions: one transaction for the whole run; any emission failure
    rolls back everything not yet committed and aborts the run.
"""
import logging
from typing import Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from .context import ParserContext
from .emitter import RelationalEmitter
from .errors import EmissionError, FormatViolation
from .records import Record
from .sinks import StatementSink

log = logging.getLogger(__name__)

NONE_FOUND = "none found"


class TransactionStrategy(Protocol):
    def begin_run(self, sink: StatementSink) -> None: ...
    def process(self, record: Record, emitter: RelationalEmitter,
                sink: StatementSink, context: ParserContext) -> None: ...
    def end_run(self, sink: StatementSink) -> None: ...
    def abort_run(self, sink: StatementSink) -> None: ...


class PerRecordTransactions:
    def begin_run(self, sink: StatementSink):
        pass

    def process(self, record, emitter, sink, context):
        try:
            statements = emitter.emit(record)
            if statements is None:
                context.commit_record()
                context.stats.records_skipped += 1
                return
            prepared = sink.prepare(statements)
            sink.begin()
            try:
                sink.execute(prepared)
                sink.commit()
            except BaseException:
                sink.rollback()
                raise
        except (EmissionError, SQLAlchemyError, TypeError, ValueError) as e:
            context.rollback_record()
            context.stats.records_failed += 1
            ident = record.identifier or NONE_FOUND
            log.exception("record rolled back: %s", ident)
            sink.placeholder(f"record {ident} rolled back: {e}")
            return
        context.commit_record()
        context.stats.records_emitted += 1

    def end_run(self, sink: StatementSink):
        pass

    def abort_run(self, sink: StatementSink):
        pass


class BatchedTransactions:
    def begin_run(self, sink: StatementSink):
        sink.begin()

    def process(self, record, emitter, sink, context):
        statements = emitter.emit(record)
        if statements is None:
            context.stats.records_skipped += 1
        else:
            sink.execute(sink.prepare(statements))
            context.stats.records_emitted += 1
        context.commit_record()

    def end_run(self, sink: StatementSink):
        sink.commit()

    def abort_run(self, sink: StatementSink):
        sink.rollback()


def make_strategy(per_record: bool) -> TransactionStrategy:
    return PerRecordTransactions() if per_record else BatchedTransactions()


class TransactionController:
    """Feeds records through the emitter into the sink under one strategy."""
    def __init__(self, strategy: TransactionStrategy, emitter: RelationalEmitter,
                 sink: StatementSink, context: ParserContext):
        self.strategy = strategy
        self.emitter = emitter
        self.sink = sink
        self.context = context

    def run(self, records: Iterable[Record]):
        self.strategy.begin_run(self.sink)
        try:
            for record in records:
                self.strategy.process(record, self.emitter, self.sink, self.context)
        except FormatViolation:
            # everything before the offending record is complete and valid
            self.strategy.end_run(self.sink)
            raise
        except BaseException:
            self.strategy.abort_run(self.sink)
            raise
        self.strategy.end_run(self.sink)
