# dat2sql/pipeline.py
"""
Driver: reader -> accumulator -> emitter -> transaction controller -> sink.

Data flows one way and exactly one record is in flight at a time.
"""
import io
import logging
import sys
from contextlib import contextmanager
from typing import IO, Iterable, Iterator, Optional

from .accumulator import iter_records
from .context import ParserContext
from .db import make_engine, session_scope
from .lines import iter_input_lines
from .settings import STDIO, ParserConfig
from .sinks import DUMPERS, DatabaseSink, SqlTextSink, StatementSink
from .transactions import TransactionController, make_strategy

log = logging.getLogger(__name__)


@contextmanager
def open_output(path: str) -> Iterator[IO[str]]:
    if path == STDIO:
        yield sys.stdout
        sys.stdout.flush()
        return
    with io.open(path, "w", encoding="utf-8", newline="\n") as fh:
        yield fh


def emit_records(records: Iterable, context: ParserContext, sink: StatementSink):
    """Write schema (unless omitted) and every record's rows into `sink`."""
    grammar = context.grammar
    if not context.config.omit_schema:
        sink.write_schema(grammar.tables, grammar.views)
    controller = TransactionController(
        strategy=make_strategy(context.config.per_record_transactions),
        emitter=grammar.emitter_factory(context),
        sink=sink,
        context=context,
    )
    controller.run(records)


def run(config: ParserConfig, lines: Optional[Iterable[str]] = None,
        out: Optional[IO[str]] = None) -> ParserContext:
    """
    Run one conversion. `lines`/`out` override the configured input and
    output (used by tests and embedding callers).
    Raises FormatViolation / InputError on fatal problems after flushing
    whatever was already emitted.
    """
    context = ParserContext.from_config(config)
    if lines is None:
        lines = iter_input_lines(config.inputs)
    records = iter_records(lines, context.grammar, context)

    try:
        if config.output_format in DUMPERS:
            dump = DUMPERS[config.output_format]
            with _output(config, out) as fh:
                for record in records:
                    dump(record, fh)
                    context.stats.records_emitted += 1
        elif config.database_url:
            engine = make_engine(config.database_url)
            try:
                with session_scope(engine) as session:
                    emit_records(records, context, DatabaseSink(session, engine))
            finally:
                engine.dispose()
        else:
            with _output(config, out) as fh:
                emit_records(records, context, SqlTextSink(fh))
    finally:
        log.info("%s: %s", config.grammar, context.summary())
    return context


@contextmanager
def _output(config: ParserConfig, out: Optional[IO[str]]) -> Iterator[IO[str]]:
    if out is not None:
        yield out
        return
    with open_output(config.output) as fh:
        yield fh
