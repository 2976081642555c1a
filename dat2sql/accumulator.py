# dat2sql/accumulator.py
"""
Per-record state machine folding classified lines into Records.

    AwaitingStart --start tag--> Accumulating --terminator--> Terminated
                                                                  |
    AwaitingStart <-----------------------------------------------+

Records are produced lazily by `iter_records`; end of input while a record
is still accumulating discards it.
"""
import logging
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional

from .errors import FieldFormatError, SingletonConflictError
from .grammars.base import Accession, FieldSpec, Grammar, Identifier, Item, Scalar, SingletonPolicy, Value
from .lines import CONTINUATION, TERMINATOR, UNRECOGNIZED
from .records import DbXref, Interaction, Isoform, Record, UniProtRef

if TYPE_CHECKING:
    from .context import ParserContext

log = logging.getLogger(__name__)


class State(Enum):
    AWAITING_START = "awaiting-start"
    ACCUMULATING   = "accumulating"
    TERMINATED     = "terminated"


class RecordBuilder:
    """Mutable record under construction."""
    def __init__(self, grammar: str, policy: SingletonPolicy):
        self.grammar = grammar
        self.policy = policy
        self.identifier: Optional[str] = None
        self.scalars: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.accessions: List[str] = []
        self.db_xrefs: List[DbXref] = []
        self.interactions: List[Interaction] = []
        self.isoforms: List[Isoform] = []
        self.uniprot_refs: List[UniProtRef] = []

    def add(self, item: Item):
        if isinstance(item, Identifier):
            self.set_identifier(item.value)
        elif isinstance(item, Scalar):
            self.set_scalar(item.name, item.value)
        elif isinstance(item, Value):
            self.lists.setdefault(item.name, []).append(item.value)
        elif isinstance(item, Accession):
            self.accessions.append(item.value)
        elif isinstance(item, DbXref):
            self.db_xrefs.append(item)
        elif isinstance(item, Interaction):
            self.add_interaction(item)
        elif isinstance(item, Isoform):
            self.isoforms.append(item)
        elif isinstance(item, UniProtRef):
            self.uniprot_refs.append(item)
        else:
            raise TypeError(f"unexpected item {item!r}")

    def add_interaction(self, item: Interaction):
        # an empty side means "this entry"; AC lines precede CC lines
        if not (item.accession_a and item.accession_b):
            if not self.accessions:
                log.debug("interaction in %s before any accession; dropped", self.identifier)
                return
            own = self.accessions[0]
            item = item.model_copy(update={
                "accession_a": item.accession_a or own,
                "accession_b": item.accession_b or own,
            })
        self.interactions.append(item)

    def set_identifier(self, value: str):
        if self.identifier is None:
            self.identifier = value
            return
        if value == self.identifier:
            return
        if self.policy == "fatal":
            raise SingletonConflictError("ID", self.identifier, self.identifier, value)
        # fold: the first identifier stays primary, the rest are kept as values
        ids = self.lists.setdefault("ID", [self.identifier])
        ids.append(value)

    def set_scalar(self, name: str, value: str):
        if name in self.lists:
            # already folded into a list
            self.lists[name].append(value)
            return
        existing = self.scalars.get(name)
        if existing is None:
            self.scalars[name] = value
            return
        if existing == value:
            return
        if self.policy == "fatal":
            raise SingletonConflictError(name, self.identifier, existing, value)
        del self.scalars[name]
        self.lists[name] = [existing, value]

    def freeze(self) -> Record:
        return Record(
            grammar=self.grammar,
            identifier=self.identifier,
            scalars=dict(self.scalars),
            lists={k: list(v) for k, v in self.lists.items()},
            accessions=list(self.accessions),
            db_xrefs=list(self.db_xrefs),
            interactions=list(self.interactions),
            isoforms=list(self.isoforms),
            uniprot_refs=list(self.uniprot_refs),
        )


class StanzaAccumulator:
    def __init__(self, grammar: Grammar, trace: bool = False):
        self.grammar = grammar
        self.classifier = grammar.classifier()
        self.trace = trace
        self.state = State.AWAITING_START
        self.builder: Optional[RecordBuilder] = None
        self.pending_spec: Optional[FieldSpec] = None
        self.pending_text = ""
        self.dropped_lines = 0

    # -----------------------------------------------------------------
    # Pending field handling
    # -----------------------------------------------------------------
    def _flush(self):
        spec, text = self.pending_spec, self.pending_text
        self.pending_spec, self.pending_text = None, ""
        if spec is None or self.builder is None:
            return
        try:
            items = spec.parse_or_raise(text)
        except FieldFormatError as e:
            self.dropped_lines += 1
            log.debug("dropping malformed field in %s: %s", self.builder.identifier, e)
            return
        for item in items:
            self.builder.add(item)

    def _append(self, spec: FieldSpec, payload: str):
        if self.pending_spec is not None and self.pending_spec is not spec:
            self._flush()
        elif self.pending_spec is spec and spec.starts_unit and spec.starts_unit(payload):
            self._flush()
        self.pending_spec = spec
        self.pending_text = spec.join(self.pending_text, payload)
        if spec.complete(self.pending_text):
            self._flush()

    # -----------------------------------------------------------------
    # State transitions
    # -----------------------------------------------------------------
    def _start(self):
        self.builder = RecordBuilder(self.grammar.name, self.grammar.singleton_policy)
        self.pending_spec, self.pending_text = None, ""
        self.state = State.ACCUMULATING

    def _terminate(self) -> Record:
        self._flush()
        self.state = State.TERMINATED
        record = self.builder.freeze()
        self.builder = None
        self.state = State.AWAITING_START
        return record

    def feed(self, line: str) -> Optional[Record]:
        """Consume one line; returns the frozen Record when its terminator is seen."""
        tag, payload = self.classifier.classify(line)
        if self.trace:
            log.debug("%s %-2s %r", self.state.value, tag, payload)

        if self.state is State.AWAITING_START:
            if tag == self.grammar.start_tag:
                self._start()
                self._append(self.grammar.fields[tag], payload)
            return None

        if tag == TERMINATOR:
            return self._terminate()
        if tag == CONTINUATION:
            if self.pending_spec is not None:
                self._append(self.pending_spec, payload)
            else:
                self.dropped_lines += 1
            return None
        if tag == UNRECOGNIZED:
            self.dropped_lines += 1
            log.debug("ignoring unrecognized line %r", line)
            return None
        self._append(self.grammar.fields[tag], payload)
        return None

    def finish(self):
        """End of input. A record without its terminator is discarded."""
        if self.state is State.ACCUMULATING:
            log.warning(
                "input ended inside record %s; discarding it",
                self.builder.identifier if self.builder else None,
            )
        self.builder = None
        self.pending_spec, self.pending_text = None, ""
        self.state = State.AWAITING_START


def iter_records(lines: Iterable[str], grammar: Grammar,
                 context: Optional["ParserContext"] = None) -> Iterator[Record]:
    """Lazily turn a line sequence into Records; re-open the source to restart."""
    acc = StanzaAccumulator(grammar, trace=bool(context and context.config.trace))
    for line in lines:
        record = acc.feed(line)
        if record is not None:
            if context is not None:
                context.stats.records_read += 1
            yield record
    acc.finish()
    if context is not None:
        context.stats.lines_dropped += acc.dropped_lines
